"""
ARKHAM Export Module

Readable text and Markdown renderings of a scenario flow.
"""

from arkham.export.formatters import (
    BaseFormatter,
    TextFormatter,
    MarkdownFormatter,
    get_formatter,
)
from arkham.export.scenario_text import (
    ScenarioTextExporter,
    generate_scenario_text,
    export_to_file,
)

__all__ = [
    "BaseFormatter",
    "TextFormatter",
    "MarkdownFormatter",
    "get_formatter",
    "ScenarioTextExporter",
    "generate_scenario_text",
    "export_to_file",
]
