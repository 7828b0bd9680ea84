"""
Allocation Services Package.

WHAT:
    Pure computations over already-fetched contracts and expenses, plus the
    settings repository used for shared filter presets.

ARCHITECTURE:
    - Stateless: every call recomputes from the full expense log
    - Tolerant: malformed records are skipped, never raised
    - Observable: skipped records go to an optional AllocationDiagnostics

MODULES:
    - records: canonical Contract/Expense dataclasses
    - normalization: raw documents / ORM rows -> records, amount and date parsing
    - spend_aggregator: spend per contract and contract line item
    - contract_projection: overdue vs future proration, contract overview
    - branch_shares: per-branch split of expenses (incl. amortization)
    - spend_summary: dashboard rollups built on branch shares
    - cost_domains: marketing vs operations
    - filter_presets: settings repository + preset store
    - diagnostics: skipped-record channel
"""
