"""Prompt loading and rendering from versioned YAML files."""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from logger import get_logger

logger = get_logger()


class PromptManager:
    """Loads prompt definitions (system prompt, user template, parameters).

    Each YAML file carries a ``version`` that is stored on classified
    transactions so results can be traced back to the prompt that produced them.
    """

    def __init__(self, prompts_dir: Optional[Path] = None):
        """Initialize the prompt manager.

        Args:
            prompts_dir: Directory containing prompt YAML files.
                        Defaults to llm/prompts/ in the project.
        """
        self.prompts_dir = prompts_dir or Path(__file__).parent
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_prompt(self, prompt_name: str) -> Dict[str, Any]:
        """Load a prompt definition, caching it for the manager's lifetime.

        Raises:
            FileNotFoundError: If prompt file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
        """
        if prompt_name in self._cache:
            return self._cache[prompt_name]

        prompt_file = self.prompts_dir / f"{prompt_name}.yaml"
        if not prompt_file.exists():
            raise FileNotFoundError(f"Prompt file not found: {prompt_file}")

        logger.debug(f"Loading prompt from {prompt_file}")
        with open(prompt_file, "r", encoding="utf-8") as f:
            prompt_config = yaml.safe_load(f)

        self._cache[prompt_name] = prompt_config
        return prompt_config

    def render_prompt(
        self, prompt_name: str, variables: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Render a prompt's user template with the given variables.

        Returns:
            Dictionary with keys: system_prompt, user_prompt, parameters, version.

        Raises:
            ValueError: If the template references a variable that was not given.
        """
        prompt_config = self.load_prompt(prompt_name)
        template = prompt_config.get("user_prompt_template", "")

        try:
            user_prompt = template.format(**variables)
        except KeyError as e:
            raise ValueError(
                f"Prompt '{prompt_name}' is missing variable {e.args[0]}"
            ) from e

        return {
            "system_prompt": prompt_config.get("system_prompt", ""),
            "user_prompt": user_prompt,
            "parameters": prompt_config.get("parameters", {}),
            "version": str(prompt_config.get("version", "unknown")),
        }
