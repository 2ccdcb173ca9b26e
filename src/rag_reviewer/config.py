"""
Configuration Management

시스템 설정 관리. 설정은 프로세스 진입점에서 한 번 생성되어 각 컴포넌트에 전달된다.
"""

import os
import yaml
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, Mapping
from pathlib import Path
import logging
from logging.handlers import RotatingFileHandler


@dataclass
class ModelConfig:
    """생성 / 임베딩 모델 설정"""
    provider: str = "openai"  # 'openai', 'local'
    chat_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: Optional[int] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout_seconds: float = 60.0
    max_new_tokens: int = 1024
    device: Optional[str] = None


@dataclass
class QdrantConfig:
    """Qdrant 벡터 데이터베이스 설정 (조회 전용)"""
    host: str = "localhost"
    port: int = 6333
    url: Optional[str] = None
    api_key: Optional[str] = None
    collection_name: str = "conventions"
    namespace: Optional[str] = None
    content_field: str = "text"
    url_field: str = "url"


@dataclass
class GitHubConfig:
    """GitHub API 설정"""
    token: Optional[str] = None
    api_base_url: str = "https://api.github.com"
    timeout_seconds: int = 30
    max_retries: int = 3


@dataclass
class ReviewConfig:
    """리뷰 생성 설정"""
    exclude: str = ""
    query_count: int = 5
    language: Optional[str] = "korean"
    strict_line_validation: bool = True
    max_workers: int = 1
    hunk_timeout: Optional[float] = 120.0
    review_body: Optional[str] = None


@dataclass
class LoggingConfig:
    """로깅 설정"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


class _EnvReader:
    """환경 변수 조회. GitHub Actions 의 INPUT_<NAME> 형식도 허용"""

    def __init__(self, environ: Mapping[str, str]):
        self.environ = environ

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for key in (name, f"INPUT_{name}"):
            value = self.environ.get(key)
            if value is not None and value != "":
                return value
        return default

    def get_int(self, name: str, default: Optional[int]) -> Optional[int]:
        value = self.get(name)
        return int(value) if value is not None else default

    def get_float(self, name: str, default: Optional[float]) -> Optional[float]:
        value = self.get(name)
        return float(value) if value is not None else default

    def get_bool(self, name: str, default: bool) -> bool:
        value = self.get(name)
        if value is None:
            return default
        return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppConfig:
    """전체 애플리케이션 설정"""
    model: ModelConfig = field(default_factory=ModelConfig)
    qdrant: QdrantConfig = field(default_factory=QdrantConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """환경 변수에서 설정 로드"""
        env = _EnvReader(os.environ if environ is None else environ)
        return cls(
            model=ModelConfig(
                provider=env.get("LLM_PROVIDER", "openai").lower(),
                chat_model=env.get("LLM_API_CHAT", "gpt-4o-mini"),
                embedding_model=env.get("LLM_API_EMBEDDING", "text-embedding-3-small"),
                embedding_dimensions=env.get_int("EMBEDDING_DIMENSIONS", None),
                api_key=env.get("LLM_API_KEY"),
                base_url=env.get("LLM_BASE_URL"),
                timeout_seconds=env.get_float("LLM_TIMEOUT", 60.0),
                max_new_tokens=env.get_int("LLM_MAX_NEW_TOKENS", 1024),
                device=env.get("LLM_DEVICE"),
            ),
            qdrant=QdrantConfig(
                host=env.get("QDRANT_HOST", "localhost"),
                port=env.get_int("QDRANT_PORT", 6333),
                url=env.get("QDRANT_URL"),
                api_key=env.get("QDRANT_API_KEY"),
                collection_name=env.get("QDRANT_COLLECTION", "conventions"),
                namespace=env.get("VECTOR_NAMESPACE"),
                content_field=env.get("QDRANT_CONTENT_FIELD", "text"),
                url_field=env.get("QDRANT_URL_FIELD", "url"),
            ),
            github=GitHubConfig(
                token=env.get("GITHUB_TOKEN"),
                api_base_url=env.get("GITHUB_API_URL", "https://api.github.com"),
                timeout_seconds=env.get_int("GITHUB_TIMEOUT", 30),
                max_retries=env.get_int("GITHUB_MAX_RETRIES", 3),
            ),
            review=ReviewConfig(
                exclude=env.get("EXCLUDE", ""),
                query_count=env.get_int("QUERY_COUNT", 5),
                language=env.get("REVIEW_LANGUAGE", "korean"),
                strict_line_validation=env.get_bool("STRICT_LINE_VALIDATION", True),
                max_workers=env.get_int("REVIEW_MAX_WORKERS", 1),
                hunk_timeout=env.get_float("REVIEW_HUNK_TIMEOUT", 120.0),
                review_body=env.get("REVIEW_BODY"),
            ),
            logging=LoggingConfig(
                level=env.get("LOG_LEVEL", "INFO"),
                format=env.get("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                file_path=env.get("LOG_FILE"),
                max_file_size=env.get_int("LOG_MAX_SIZE", 10 * 1024 * 1024),
                backup_count=env.get_int("LOG_BACKUP_COUNT", 5),
            ),
            debug=env.get_bool("DEBUG", False),
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "AppConfig":
        """YAML 파일에서 설정 로드"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(
            model=ModelConfig(**config_data.get('model', {})),
            qdrant=QdrantConfig(**config_data.get('qdrant', {})),
            github=GitHubConfig(**config_data.get('github', {})),
            review=ReviewConfig(**config_data.get('review', {})),
            logging=LoggingConfig(**config_data.get('logging', {})),
            debug=config_data.get('debug', False),
        )

    def validate(self) -> None:
        """설정 유효성 검사"""
        errors = []

        if not self.github.token:
            errors.append("GitHub token is required")

        if self.model.provider not in {"openai", "local"}:
            errors.append(f"Invalid model provider: {self.model.provider}")

        if self.model.provider == "openai" and not self.model.api_key:
            errors.append("LLM API key is required for the openai provider")

        if self.model.embedding_dimensions is not None and self.model.embedding_dimensions <= 0:
            errors.append("Embedding dimensions must be positive")

        if self.review.query_count <= 0:
            errors.append("Query count must be positive")

        if self.review.max_workers <= 0:
            errors.append("Max workers must be positive")

        if self.review.hunk_timeout is not None and self.review.hunk_timeout <= 0:
            errors.append("Hunk timeout must be positive")

        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    @property
    def exclude_patterns(self):
        """쉼표로 구분된 exclude 패턴 목록"""
        return [p.strip() for p in self.review.exclude.split(',') if p.strip()]

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환 (비밀 값 제외)"""
        data = asdict(self)
        # 보안상 토큰과 키는 제외
        data['github'].pop('token', None)
        data['model'].pop('api_key', None)
        data['qdrant'].pop('api_key', None)
        return data


class ConfigManager:
    """설정 관리자"""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig.from_env()
        self._config.validate()
        self._setup_logging()

    @property
    def config(self) -> AppConfig:
        """현재 설정 반환"""
        return self._config

    def _setup_logging(self) -> None:
        """로깅 설정"""
        level = logging.DEBUG if self._config.debug else getattr(logging, self._config.logging.level.upper())
        logging.basicConfig(
            level=level,
            format=self._config.logging.format,
        )

        # 파일 로깅이 설정된 경우 로테이션 설정
        if self._config.logging.file_path:
            handler = RotatingFileHandler(
                self._config.logging.file_path,
                maxBytes=self._config.logging.max_file_size,
                backupCount=self._config.logging.backup_count,
            )
            handler.setFormatter(logging.Formatter(self._config.logging.format))
            logging.getLogger().addHandler(handler)
