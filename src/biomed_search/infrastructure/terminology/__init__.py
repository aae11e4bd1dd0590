"""Terminology services (synonyms, controlled vocabulary)."""

from .vocabulary import MESH_HEADINGS, SYNONYMS, StaticTerminologyService

__all__ = ["MESH_HEADINGS", "SYNONYMS", "StaticTerminologyService"]
