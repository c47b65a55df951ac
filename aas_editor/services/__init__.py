"""
Backend services for the AAS environment editor.

Pipeline:
- Tree: element CRUD on the editable record
- Encoders: record to AAS XML / AAS JSON
- Decoder: AASX / AAS XML to record
- Validator: local and remote schema checks
- Repair: ordered fixes on the XML document, re-synced into the tree
"""

from aas_editor.services.catalog import TemplateCatalogService
from aas_editor.services.decoder import AASXDecoder
from aas_editor.services.json_encoder import RecordEncoder
from aas_editor.services.packager import AASXPackager
from aas_editor.services.repair import RepairEngine
from aas_editor.services.session import SessionStore
from aas_editor.services.synchronizer import TreeSynchronizer
from aas_editor.services.tree import ElementTreeService
from aas_editor.services.validator import ValidationService
from aas_editor.services.xml_encoder import MarkupEncoder

__all__ = [
    "ElementTreeService",
    "MarkupEncoder",
    "RecordEncoder",
    "AASXDecoder",
    "ValidationService",
    "RepairEngine",
    "TreeSynchronizer",
    "AASXPackager",
    "SessionStore",
    "TemplateCatalogService",
]
