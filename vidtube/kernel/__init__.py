"""
Identity kernel: models, credential storage, tokens and sessions.

Nothing in here depends on FastAPI; the HTTP layer lives in vidtube.api.
"""
