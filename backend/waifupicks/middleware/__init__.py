# Middleware package init
"""
WaifuPicks Backend — Middleware Package
========================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first, so the access log line carries it
    2. Logging measures everything downstream, including CORS preflights
"""
