"""The four record domains shared by the couple."""

from __future__ import annotations

from duobudget.contracts.config import DomainSpec
from duobudget.contracts.record import DATE_FIELD

DEFAULT_NAMES = {"persona1": "Yo", "persona2": "Ella"}

EXPENSES = DomainSpec(
    name="expenses",
    collection="gastos",
    records_key="nuestros_gastos",
    config_key="gastos_config",
    config_section="gastosConfig",
    default_config={"presupuesto": 1500, "resetSemanal": True, "nombres": dict(DEFAULT_NAMES)},
)

SAVINGS = DomainSpec(
    name="savings",
    collection="ahorros",
    records_key="nuestros_ahorros",
    config_key="ahorro_config",
    config_section="ahorroConfig",
    default_config={
        "metaMensual": 500,
        "metaAnual": 6000,
        "resetMensual": True,
        "montosOpciones": {"opcion1": 4.0, "opcion2": 5.0, "opcion3": 6.0},
        "nombres": dict(DEFAULT_NAMES),
    },
)

LIMITS = DomainSpec(
    name="limits",
    collection="limites",
    records_key="limites_registros",
    config_key="limites_config",
    config_section="limitesConfig",
    default_config={"nombres": dict(DEFAULT_NAMES)},
)

# Special dates are listed chronologically and never force a resync.
SPECIAL_DATES = DomainSpec(
    name="special_dates",
    collection="dias_especiales",
    records_key="dias_especiales",
    config_key="dias_config",
    order_by=DATE_FIELD,
    descending=False,
    detect_remote_changes=False,
    default_config={"nombres": dict(DEFAULT_NAMES)},
)

ALL_DOMAINS: tuple[DomainSpec, ...] = (EXPENSES, SAVINGS, LIMITS, SPECIAL_DATES)
DOMAINS_BY_NAME: dict[str, DomainSpec] = {domain.name: domain for domain in ALL_DOMAINS}


def get_domain(name: str) -> DomainSpec:
    try:
        return DOMAINS_BY_NAME[name]
    except KeyError:
        available = ", ".join(sorted(DOMAINS_BY_NAME))
        raise ValueError(f"Unknown domain: {name!r}. Available: {available}") from None
