"""
Utility modules for the AAS environment editor.
"""

from aas_editor.utils.id_short import sanitize_id_short
from aas_editor.utils.xsd_types import normalize_value_type

__all__ = ["normalize_value_type", "sanitize_id_short"]
