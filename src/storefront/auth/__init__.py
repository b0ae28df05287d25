# Customer authentication: OAuth 2.0 confidential-client flow + cookie sessions.
# Created: 2026-10-19
