"""
Prompt Template Store
Loads prompt definitions from markdown files and renders user prompt templates.

A prompt file looks like:

    ## System Prompt
    You are ... {{include partials/mapp_personalization}}

    ## Settings
    - Model: openai/gpt-4o
    - Temperature: 0.7
    - Response Format: text

    ## User Prompt Template
    Copy: {{content}}
    {{#if logoUrl}}Logo: {{logoUrl}}{{/if}}
"""
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

SECTION_NAMES = ("System Prompt", "Settings", "User Prompt Template")
SECTION_PATTERN = r"^##\s+{name}\s*$\n?([\s\S]*?)(?=^##\s+(?:System Prompt|Settings|User Prompt Template)\s*$|\Z)"
INCLUDE_PATTERN = re.compile(r"\{\{\s*include\s+([A-Za-z0-9_\-./]+)\s*\}\}")
IF_BLOCK_PATTERN = re.compile(r"\{\{#if\s+(\w+)\s*\}\}([\s\S]*?)\{\{/if\}\}")
VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")
CODE_FENCE_LINE = re.compile(r"^```[a-zA-Z]*\s*$\n?", re.MULTILINE)


class TemplateError(Exception):
    """Base class for prompt configuration failures"""


class TemplateNotFoundError(TemplateError):
    def __init__(self, name: str, path: Path):
        super().__init__(f"Prompt template not found: {name} ({path})")
        self.name = name


class CircularIncludeError(TemplateError):
    def __init__(self, chain: Tuple[str, ...], name: str):
        cycle = " -> ".join(chain + (name,))
        super().__init__(f"Circular prompt include: {cycle}")
        self.chain = chain + (name,)


@dataclass
class PromptSettings:
    model: Optional[str] = None
    temperature: Optional[float] = None
    response_format: Optional[Dict[str, str]] = None


@dataclass
class PromptDefinition:
    system_prompt: str
    settings: PromptSettings = field(default_factory=PromptSettings)
    user_template: Optional[str] = None


class PromptStore:
    """
    Reads prompt definitions from a directory of markdown files.

    Files are re-read on every call so prompt edits apply without a restart.
    """

    def __init__(self, prompts_dir: Path):
        self.prompts_dir = Path(prompts_dir)

    def _path(self, name: str) -> Path:
        return self.prompts_dir / f"{name}.md"

    def _read(self, name: str) -> str:
        path = self._path(name)
        if not path.is_file():
            raise TemplateNotFoundError(name, path)
        return path.read_text(encoding="utf-8")

    def _resolve_includes(self, text: str, chain: Tuple[str, ...]) -> str:
        def replace(match: "re.Match[str]") -> str:
            included = match.group(1)
            if included in chain:
                raise CircularIncludeError(chain, included)
            body = self._read(included)
            return self._resolve_includes(body.strip(), chain + (included,))

        return INCLUDE_PATTERN.sub(replace, text)

    @staticmethod
    def _section(content: str, name: str) -> Optional[str]:
        pattern = re.compile(SECTION_PATTERN.format(name=re.escape(name)), re.MULTILINE)
        match = pattern.search(content)
        if not match:
            return None
        return match.group(1).strip()

    @staticmethod
    def _parse_settings(text: Optional[str]) -> PromptSettings:
        settings = PromptSettings()
        if not text:
            return settings

        model_match = re.search(r"Model:\s*(\S+)", text)
        if model_match:
            settings.model = model_match.group(1)

        temp_match = re.search(r"Temperature:\s*([\d.]+)", text)
        if temp_match:
            settings.temperature = float(temp_match.group(1))

        format_match = re.search(r"Response Format:\s*(\S+)", text, re.IGNORECASE)
        if format_match and format_match.group(1).lower() == "json":
            settings.response_format = {"type": "json_object"}

        return settings

    def load(self, name: str) -> PromptDefinition:
        """Load a prompt definition with all includes resolved"""
        content = self._read(name)
        chain = (name,)

        system_prompt = self._section(content, "System Prompt") or ""
        system_prompt = CODE_FENCE_LINE.sub("", self._resolve_includes(system_prompt, chain))

        user_template = self._section(content, "User Prompt Template")
        if user_template is not None:
            user_template = self._resolve_includes(user_template, chain)

        return PromptDefinition(
            system_prompt=system_prompt.strip(),
            settings=self._parse_settings(self._section(content, "Settings")),
            user_template=user_template,
        )

    def build(self, name: str, variables: Mapping[str, Any]) -> str:
        """Render the user prompt template of ``name`` with ``variables``"""
        definition = self.load(name)
        if definition.user_template is None:
            raise TemplateError(f"Prompt template '{name}' has no User Prompt Template section")
        return render_template(definition.user_template, variables)


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    """
    Apply ``{{#if flag}}`` blocks, then literal ``{{name}}`` substitution.

    Placeholders without a matching variable are left in place.
    """
    def keep_if_truthy(match: "re.Match[str]") -> str:
        return match.group(2) if variables.get(match.group(1)) else ""

    def substitute(match: "re.Match[str]") -> str:
        if match.group(1) not in variables:
            return match.group(0)
        value = variables[match.group(1)]
        return "" if value is None else str(value)

    rendered = IF_BLOCK_PATTERN.sub(keep_if_truthy, template)
    rendered = VARIABLE_PATTERN.sub(substitute, rendered)

    return rendered.strip()
