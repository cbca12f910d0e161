"""
MODEL REGISTRY MODULE
=====================

Maps short aliases ("llama3", "qwen", ...) to fully-qualified Hugging Face model
ids. Sessions only ever store the resolved id, so every alias is resolved here
before it reaches the SessionStore or the provider.
"""

from typing import Dict, List, Optional

from chatbot.models import ModelInfo


class ModelRegistry:
    """Fixed alias table with one alias marked default."""

    def __init__(self, aliases: Dict[str, str], default_alias: str):
        if default_alias not in aliases:
            raise ValueError(f"Default model alias {default_alias!r} is not a known alias")
        self._aliases = dict(aliases)
        self.default_alias = default_alias

    @property
    def default_model(self) -> str:
        return self._aliases[self.default_alias]

    def resolve(self, model: Optional[str] = None) -> str:
        """
        Empty or missing -> the default model id. Known alias -> its model id.
        Anything else is assumed to already be a full model id and is returned as is.
        """
        if not model:
            return self.default_model
        return self._aliases.get(model, model)

    def list_models(self) -> List[ModelInfo]:
        return [
            ModelInfo(alias=alias, model_id=model_id, is_default=alias == self.default_alias)
            for alias, model_id in self._aliases.items()
        ]
