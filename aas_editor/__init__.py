# AAS Environment Editor Backend
"""
AAS Environment Editor Core

Edits one Asset Administration Shell with its submodels as an element tree
and turns it into standard AAS documents. Uses Eclipse BaSyx Python SDK
datatypes for the value-type vocabulary and lxml for the XML form.

Architecture:
- Encoders: tree to AAS XML and AAS JSON, concept descriptions derived
- Decoder: AASX archives and AAS XML back to a tree
- Validator: local checks plus remote schema checks
- Repair engine: ordered, idempotent fixes on the XML document
"""

__version__ = "1.0.0"
