"""Document templates describing anchors and field regions.

A template lists the literal markers printed on a document type
(anchors) and, for every field, which anchor it hangs off and the
rectangle offset from that anchor's top-left corner.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.utils.exceptions import ConfigError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class RoiOffset(BaseModel):
    """Field rectangle relative to the primary anchor, full-resolution pixels."""

    model_config = ConfigDict(frozen=True)

    x: float = 0
    y: float = 0
    width: float = 100
    height: float = 30


class AnchorSpec(BaseModel):
    """Keywords identifying one anchor on the document."""

    model_config = ConfigDict(frozen=True)

    keywords: list[str] = Field(default_factory=list)


class FieldSpec(BaseModel):
    """Location of a field, anchored on ``anchor_refs[0]``."""

    model_config = ConfigDict(frozen=True)

    anchor_refs: list[str] = Field(default_factory=list)
    roi_offset: RoiOffset = Field(default_factory=RoiOffset)


class DocumentTemplate(BaseModel):
    """Immutable anchor/field layout for one document type."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    description: str = ""
    anchors: dict[str, AnchorSpec] = Field(default_factory=dict)
    fields: dict[str, FieldSpec] = Field(default_factory=dict)

    def unresolved_fields(self) -> dict[str, str]:
        """Map each field whose primary anchor is undefined to that anchor key."""
        return {
            key: spec.anchor_refs[0]
            for key, spec in self.fields.items()
            if spec.anchor_refs and spec.anchor_refs[0] not in self.anchors
        }


def parse_template(name: str, raw: object) -> DocumentTemplate:
    """Validate a raw template mapping.

    Args:
        name: Template name, used when the mapping does not set one.
        raw: Mapping with ``anchors`` and ``fields`` sections.

    Returns:
        Parsed template.

    Raises:
        ConfigError: If the mapping does not describe a valid template.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"Template '{name}' must be a mapping")
    try:
        template = DocumentTemplate.model_validate({"name": name, **raw})
    except ValidationError as exc:
        raise ConfigError(f"Invalid template '{name}': {exc}") from exc

    if not template.anchors:
        logger.warning("Template '%s' defines no anchors", name)
    if not template.fields:
        logger.warning("Template '%s' defines no fields", name)
    for field_key, anchor_key in template.unresolved_fields().items():
        logger.warning(
            "Template '%s': field '%s' references unknown anchor '%s'",
            name,
            field_key,
            anchor_key,
        )
    return template


def as_template(template: DocumentTemplate | dict | None) -> DocumentTemplate | None:
    """Coerce a raw mapping into a template, returning ``None`` if invalid."""
    if template is None or isinstance(template, DocumentTemplate):
        return template
    try:
        return parse_template(str(template.get("name", "")), template)
    except (ConfigError, AttributeError) as exc:
        logger.warning("Ignoring invalid template: %s", exc)
        return None


class TemplateRegistry:
    """Document templates loaded from a YAML (or JSON) file.

    Args:
        templates_path: Path to a mapping of template name to template.
    """

    def __init__(self, templates_path: Path = Path("configs/templates.yaml")) -> None:
        self.templates = self._load_templates(Path(templates_path))

    def _load_templates(self, path: Path) -> dict[str, DocumentTemplate]:
        """Load and validate template definitions.

        Entries that fail validation are logged and skipped.

        Args:
            path: Path to the templates file.

        Returns:
            Dictionary of parsed templates keyed by name.
        """
        if not path.exists():
            logger.debug("No templates file at %s, using empty templates", path)
            return {}

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            logger.warning("Templates file %s is not a mapping, ignoring it", path)
            return {}

        templates: dict[str, DocumentTemplate] = {}
        for name, raw in data.items():
            try:
                templates[str(name)] = parse_template(str(name), raw)
            except ConfigError as exc:
                logger.warning("Skipping template: %s", exc)

        logger.info("Loaded %d templates from %s", len(templates), path)
        return templates

    def get(self, name: str) -> DocumentTemplate | None:
        """Look up a template by name, logging unknown names."""
        template = self.templates.get(name)
        if template is None:
            logger.warning("Unknown document template '%s'", name)
        return template

    def names(self) -> list[str]:
        return list(self.templates)

    def __contains__(self, name: object) -> bool:
        return name in self.templates

    def __len__(self) -> int:
        return len(self.templates)
