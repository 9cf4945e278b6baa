from pathlib import Path

from enhancer.analysis.exceptions import AnalysisError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template by name.

    Args:
        name: Template name without extension, e.g. "layout_analysis".
        prompt_dir: Directory holding the templates.
                    Defaults to the bundled prompts/ directory.

    Returns:
        The raw template string with placeholders.

    Raises:
        AnalysisError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AnalysisError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(name: str, prompt_dir: Path | None = None) -> str:
    """Load the JSON schema that constrains the answer to a prompt.

    Args:
        name: Prompt name; the schema lives in "<name>_schema.json".
        prompt_dir: Directory holding the schemas.
                    Defaults to the bundled prompts/ directory.

    Returns:
        The raw JSON schema string.

    Raises:
        AnalysisError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AnalysisError(f"Failed to load JSON schema: {exc}") from exc
