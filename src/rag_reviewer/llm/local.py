"""
Local Chat Model

Runs an open-source instruction-tuned model with transformers. Decoding is
greedy so repeated runs over the same prompt stay as close as possible.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .chat import ChatModel, ChatModelError, Message


logger = logging.getLogger(__name__)


JSON_MODE_INSTRUCTION = "Respond with a single JSON object and nothing else."


@dataclass
class GenerationConfig:
    """Configuration for local generation."""
    max_new_tokens: int = 1024
    do_sample: bool = False
    pad_token_id: Optional[int] = None


class TransformersChatModel(ChatModel):
    """
    Chat backend on top of a local causal language model.

    The model has no native JSON mode, so json_mode appends an instruction
    to the system turn instead.
    """

    def __init__(
        self,
        model_name: str = "Qwen/Qwen2.5-Coder-1.5B-Instruct",
        device: Optional[str] = None,
        max_new_tokens: int = 1024
    ):
        """
        Initialize local chat model.

        Args:
            model_name: Hugging Face model id with a chat template
            device: Device to run model on ('cpu', 'cuda', etc.)
            max_new_tokens: Upper bound on generated tokens per call
        """
        try:
            from transformers import AutoTokenizer, AutoModelForCausalLM
            import torch
        except ImportError as e:
            logger.error(f"Required ML dependencies not installed: {e}")
            logger.error("Install with: pip install transformers torch")
            raise

        self._torch = torch
        self.model_name = model_name
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        # generate() is not re-entrant on a shared model
        self._lock = threading.Lock()

        logger.info(f"Loading LLM model: {model_name}")
        try:
            self.tokenizer = AutoTokenizer.from_pretrained(model_name)
            self.model = AutoModelForCausalLM.from_pretrained(model_name)

            if self.tokenizer.pad_token is None:
                self.tokenizer.pad_token = self.tokenizer.eos_token

            self.model.to(self.device)
            self.model.eval()

            logger.info(f"Model loaded successfully on {self.device}")

        except Exception as e:
            logger.error(f"Failed to load model {model_name}: {e}")
            raise ChatModelError(f"Failed to load model {model_name}: {e}") from e

        self.generation_config = GenerationConfig(
            max_new_tokens=max_new_tokens,
            pad_token_id=self.tokenizer.pad_token_id
        )

    def generate(self, messages: List[Message], json_mode: bool = False) -> str:
        if json_mode:
            messages = self._with_json_instruction(messages)

        try:
            with self._lock:
                inputs = self.tokenizer.apply_chat_template(
                    messages,
                    add_generation_prompt=True,
                    return_tensors="pt"
                ).to(self.device)

                with self._torch.no_grad():
                    outputs = self.model.generate(
                        inputs,
                        max_new_tokens=self.generation_config.max_new_tokens,
                        do_sample=self.generation_config.do_sample,
                        pad_token_id=self.generation_config.pad_token_id,
                        eos_token_id=self.tokenizer.eos_token_id,
                    )

            # Decode only the generated continuation
            generated = outputs[0][inputs.shape[1]:]
            return self.tokenizer.decode(generated, skip_special_tokens=True).strip()

        except Exception as e:
            logger.error(f"Text generation failed: {e}")
            raise ChatModelError(f"Text generation failed: {e}") from e

    def _with_json_instruction(self, messages: List[Message]) -> List[Message]:
        result = [dict(m) for m in messages]
        for message in result:
            if message.get("role") == "system":
                message["content"] = f"{message['content']}\n{JSON_MODE_INSTRUCTION}"
                return result
        return [{"role": "system", "content": JSON_MODE_INSTRUCTION}] + result

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the loaded model."""
        return {
            'model_name': self.model_name,
            'backend': 'transformers',
            'device': self.device,
            'model_parameters': sum(p.numel() for p in self.model.parameters()),
            'generation_config': {
                'max_new_tokens': self.generation_config.max_new_tokens,
                'do_sample': self.generation_config.do_sample,
            }
        }

    def clear_cache(self):
        """Clear model cache to free memory."""
        if self._torch.cuda.is_available():
            self._torch.cuda.empty_cache()
        logger.info("Cleared model cache")
