"""Cost domains: which budget an expense belongs to.

Marketing expenses are tracked against budgets, contracts and promotional
channels; operations expenses (rent, utilities, HR) must never eat into the
marketing budget.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from spendboard.services.records import Expense


@dataclass(frozen=True)
class CostDomain:
    id: str
    label: str
    short_label: str
    description: str
    line_item_channel_label: str
    line_item_channel_required: bool
    supports_contracts: bool
    default_requires_contract: bool


COST_DOMAINS = {
    "marketing": CostDomain(
        id="marketing",
        label="Spese Marketing",
        short_label="Marketing",
        description="Monitoraggio delle spese marketing con collegamento a budget, contratti e canali promozionali.",
        line_item_channel_label="Canale Marketing",
        line_item_channel_required=True,
        supports_contracts=True,
        default_requires_contract=True,
    ),
    "operations": CostDomain(
        id="operations",
        label="Gestione sedi & personale",
        short_label="Gestione sedi",
        description="Costi strutturali (affitti, mutui, utilities) e spese HR che non devono impattare il budget marketing.",
        line_item_channel_label="Categoria costo",
        line_item_channel_required=False,
        supports_contracts=False,
        default_requires_contract=False,
    ),
}

DEFAULT_COST_DOMAIN = "marketing"


def get_cost_domain(domain_id: Optional[str]) -> CostDomain:
    """Return the domain, falling back to the default for unknown/empty ids."""
    return COST_DOMAINS.get(domain_id or "", COST_DOMAINS[DEFAULT_COST_DOMAIN])


def filter_by_cost_domain(
    expenses: Iterable[Expense],
    domain_id: Optional[str],
    default_domain: str = DEFAULT_COST_DOMAIN,
) -> List[Expense]:
    """Keep the expenses of one domain; undomained expenses count as the default."""
    if not domain_id:
        return list(expenses)
    return [e for e in expenses if (e.cost_domain or default_domain) == domain_id]
