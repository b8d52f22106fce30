"""
Prompt Management Service.

Advisor and chat prompts live in YAML files under eduportal/prompts/.
Each file has a `system_prompt` and optionally a `user_prompt` template.
"""
import os
import yaml
from typing import Optional, Dict, Any
from functools import lru_cache

# Path to prompts directory
PROMPTS_DIR = os.path.join(os.path.dirname(__file__), "..", "prompts")


@lru_cache(maxsize=50)
def _load_prompt_file(name: str) -> Optional[Dict[str, Any]]:
    """Load a prompt from YAML file with caching."""
    file_path = os.path.join(PROMPTS_DIR, f"{name}.yaml")

    if not os.path.exists(file_path):
        print(f"⚠️ Prompt file not found: {file_path}")
        return None

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        print(f"❌ Error loading prompt {name}: {e}")
        return None


def _render(template: str, name: str, **kwargs) -> str:
    if not kwargs or not template:
        return template
    try:
        return template.format(**kwargs)
    except KeyError as e:
        print(f"⚠️ Prompt {name} is missing variable {e}, using raw template")
        return template


def get_prompt(name: str, **kwargs) -> Dict[str, str]:
    """
    Get a prompt by name.

    Args:
        name: Name of the prompt (without .yaml extension)
        **kwargs: Variables to interpolate into both templates

    Returns:
        Dict with 'system_prompt' and 'user_prompt' keys (empty when absent)
    """
    prompt_data = _load_prompt_file(name) or {}

    return {
        "system_prompt": _render(prompt_data.get("system_prompt", ""), name, **kwargs),
        "user_prompt": _render(prompt_data.get("user_prompt", ""), name, **kwargs),
    }


def get_system_prompt(name: str, **kwargs) -> str:
    """Convenience function to get only the system prompt."""
    return get_prompt(name, **kwargs)["system_prompt"]


def clear_cache():
    """Clear the prompt cache (useful after updating YAML files)."""
    _load_prompt_file.cache_clear()
