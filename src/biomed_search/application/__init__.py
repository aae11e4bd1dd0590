"""
Application Layer - Search Pipeline Orchestration

Contains:
- search: concept extraction, query compilation, retrieval, scoring, ranking
"""
