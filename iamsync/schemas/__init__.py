"""HTTP request/response schemas (pydantic). Secret values and password hashes never appear here unmasked."""
