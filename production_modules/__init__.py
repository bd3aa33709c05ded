"""
Production Modules.

Service facades over the production kernel and engines:

    inventory    -- materials, stock ledger, recomputation pass
    products     -- products, formulas, production feasibility
    work_orders  -- work order lifecycle and consumption reconciliation

Each service owns its transaction boundary.
"""
