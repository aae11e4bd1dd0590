"""Non-NCBI retrieval sources."""

from .clinical_trials import ClinicalTrialsBackend, build_study_params, country_from_location

__all__ = ["ClinicalTrialsBackend", "build_study_params", "country_from_location"]
