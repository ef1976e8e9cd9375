# Routes package init
"""
WaifuPicks Backend — API Routes Package
=========================================

Route Inventory:
    - root.py:    GET  /                 (liveness, token issuance)
    - health.py:  GET  /health           (database readiness)
    - items.py:   GET  /items            (all tracked items)
    - waifu.py:   POST /waifu/update     (vote or single counter update)
                  POST /waifu/compare    (winner/loser vote)

Routes stay thin: validate the body, call the ledger, shape the response.
"""
