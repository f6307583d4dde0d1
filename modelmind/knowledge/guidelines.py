"""PlantUML guideline lookup keyed by diagram type."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from modelmind.models.decision import DiagramType
from modelmind.utils.config import settings

logger = logging.getLogger(__name__)


def guideline_slug(diagram_type: DiagramType | str) -> str:
    value = diagram_type.value if isinstance(diagram_type, DiagramType) else str(diagram_type)
    return value.strip().lower().replace("_", "-").replace(" ", "-")


def placeholder_for(diagram_type: DiagramType | str) -> str:
    return f"No specific guidelines available for {guideline_slug(diagram_type)} diagrams."


def read_guidelines(diagram_type: DiagramType | str, directory: Optional[str | Path] = None) -> str:
    """Return the guideline text for ``diagram_type`` or a neutral placeholder."""
    slug = guideline_slug(diagram_type)
    if not slug or slug == "unknown":
        return placeholder_for(diagram_type)
    path = Path(directory or settings.guidelines_dir) / f"{slug}.md"
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("No guidelines file for diagram type", extra={"diagram_type": slug})
        return placeholder_for(diagram_type)
    except OSError:
        logger.exception("Failed to read guidelines", extra={"path": str(path)})
        return placeholder_for(diagram_type)
    return content.strip() or placeholder_for(diagram_type)


def available_guidelines(directory: Optional[str | Path] = None) -> Dict[str, Path]:
    root = Path(directory or settings.guidelines_dir)
    if not root.is_dir():
        return {}
    return {path.stem: path for path in sorted(root.glob("*.md"))}
