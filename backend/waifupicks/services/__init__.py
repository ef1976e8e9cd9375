# Services package init
"""
WaifuPicks Backend — Services Layer
=====================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services receive a session per call, apply the ledger rules, and return
       response models or raise application exceptions.

Service Inventory:
    - LedgerService: item listing, pairwise outcome upserts, legacy single updates
"""
