"""
Macros module - makra pułapek.

Zawiera:
- build_tag_map, substitute_tags: Podstawianie tagów @{tag|pole}
- describe_macro: Krótka nazwa makra do menu
- MacroRunner: Wykonanie makra przez czat hosta
- MacroExporter: Eksport makr i reset tokenów, drzwi i makr do stanu z eksportu
"""

from .substitution import build_tag_map, substitute_tags, describe_macro, tag_for, MacroRunner
from .export import MacroExporter, ExportSummary, ResetSummary, token_ids_in, door_ids_in

__all__ = [
    "build_tag_map", "substitute_tags", "describe_macro", "tag_for", "MacroRunner",
    "MacroExporter", "ExportSummary", "ResetSummary", "token_ids_in", "door_ids_in",
]
