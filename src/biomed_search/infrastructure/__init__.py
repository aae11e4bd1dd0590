"""
Infrastructure Layer - adapters for external systems

- ncbi: PubMed retrieval (Bio.Entrez) and iCite metrics
- sources: ClinicalTrials.gov retrieval
- terminology: synonym / MeSH lookup tables
- cache: TTL response cache
- http: shared httpx client base
"""
