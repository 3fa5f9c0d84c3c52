"""
Top-level package for the talent matching service.

This package ranks candidate profiles from a talent store against a free-text
job description using text embeddings and cosine similarity, degrading to a
profile-strength ordering when embeddings are unavailable, and reports
precision / NDCG for the ranking.  There are no side-effects on import; the
API and the evaluation CLI can each be run as modules.
"""
