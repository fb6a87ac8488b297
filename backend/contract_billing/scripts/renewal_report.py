"""CLI utility listing contracts whose yearly adjustment is due."""

from __future__ import annotations

import argparse
import logging
from datetime import date
from typing import Optional

from ..database import session_scope
from ..dates import DateParseError, format_br_date, parse_calendar_date
from ..services import ContractAdjustmentService, ContractService, RenewalScheduler

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_date(raw: str) -> date:
    try:
        return parse_calendar_date(raw)
    except DateParseError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Lista os contratos com reajuste anual vencido ou previsto para os próximos "
            "30 dias, ideal para cron ou tarefas agendadas."
        )
    )
    parser.add_argument(
        "--as-of",
        type=_parse_date,
        default=None,
        help="Data de referência (AAAA-MM-DD ou DD/MM/AAAA); padrão: hoje.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mostra também os contratos cujo reajuste já foi aplicado no período.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    as_of = args.as_of or date.today()

    with session_scope() as db:
        loaded = [
            (contract.customer_name, terms, history)
            for contract, terms, history in ContractService.contracts_with_history(db)
        ]
        locks = ContractAdjustmentService.locks_by_contract(db)

    names = {terms.id: name for name, terms, _ in loaded}
    pending = RenewalScheduler.upcoming_renewals(
        ((terms, history) for _, terms, history in loaded), as_of, locks
    )
    if not pending:
        LOGGER.info("Nenhum reajuste pendente em %s", format_br_date(as_of))

    for renewal in pending:
        LOGGER.warning(
            "%s: reajuste em %s (%s dias, urgência %s)",
            names.get(renewal.contract_id, renewal.contract_id),
            format_br_date(renewal.target_date),
            renewal.days_until_renewal,
            renewal.urgency.value,
        )

    if args.verbose:
        for _, terms, history in loaded:
            status = RenewalScheduler.renewal_status(
                terms, history, as_of, locks.get(terms.id, frozenset())
            )
            if status.is_locked:
                LOGGER.debug(
                    "%s: reajuste de %s bloqueado", names[terms.id], status.target_date.year
                )
            elif status.has_adjustment_for_period:
                LOGGER.debug(
                    "%s: reajuste de %s já aplicado",
                    names[terms.id],
                    status.target_date.year,
                )

    LOGGER.info("%s contrato(s) com reajuste pendente", len(pending))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
