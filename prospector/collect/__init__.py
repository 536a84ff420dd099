"""
Collection orchestration core.

- records: record helpers and the field registry
- dedup: identity-keyed deduplication index
- convergence: stop condition for incrementally revealed feeds
- pagination: stop condition for paginated result lists
- rate_governor: spacing between requests
- session: search session, orchestrator and result
- errors: error taxonomy
"""
