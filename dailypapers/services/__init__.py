"""
Pipeline services: date windows, source fetching, normalization, batched
persistence, job tracking, ingestion and summary enrichment.
"""
