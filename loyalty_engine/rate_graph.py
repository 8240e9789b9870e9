"""
Exchange rate resolution between loyalty programs
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from loguru import logger

from .models import ExchangeRate, Program, ResolvedRate
from .exceptions import RateNotFoundError


class RateGraph:
    """
    Directed table of exchange rates with composition through a hub currency.

    Rates are not assumed to be reciprocal: rate(A, B) * rate(B, A) may
    differ from 1 because of the spread each program charges.
    """

    def __init__(self, rates: Iterable[ExchangeRate], hub_program: Program = Program.XPOINTS):
        """
        Initialize the rate graph

        Args:
            rates: Exchange rate records supplied by the rate source
            hub_program: Intermediary program used when no direct rate exists
        """
        self.hub_program = Program.parse(hub_program)
        self._rates: Dict[Tuple[Program, Program], ExchangeRate] = {}

        for record in rates:
            key = (record.from_program, record.to_program)
            existing = self._rates.get(key)
            if existing is not None:
                logger.warning(f"Duplicate rate {key[0].value}->{key[1].value}; keeping the most recent")
                if not _is_newer(record, existing):
                    continue
            self._rates[key] = record

        logger.debug(f"Rate graph built with {len(self._rates)} rates, hub {self.hub_program.value}")

    def __len__(self) -> int:
        return len(self._rates)

    def programs(self) -> List[Program]:
        """Programs that appear on either side of at least one rate"""
        seen = {self.hub_program}
        for from_program, to_program in self._rates:
            seen.add(from_program)
            seen.add(to_program)
        return [program for program in Program if program in seen]

    def get_rate(self, from_program: Program, to_program: Program) -> Optional[ExchangeRate]:
        """Direct rate record, or None"""
        return self._rates.get((Program.parse(from_program), Program.parse(to_program)))

    def resolve(self, from_program: Program, to_program: Program) -> ResolvedRate:
        """
        Resolve the rate between two programs

        Args:
            from_program: Source program
            to_program: Destination program

        Returns:
            ResolvedRate with the route taken and the age of its oldest leg

        Raises:
            RateNotFoundError: If neither a direct nor a hub-routed rate exists
        """
        from_program = Program.parse(from_program)
        to_program = Program.parse(to_program)

        if from_program == to_program:
            return ResolvedRate(
                from_program=from_program,
                to_program=to_program,
                rate=Decimal(1),
                route=[from_program],
            )

        direct = self._rates.get((from_program, to_program))
        if direct is not None:
            return ResolvedRate(
                from_program=from_program,
                to_program=to_program,
                rate=direct.rate,
                route=[from_program, to_program],
                last_updated=direct.last_updated,
            )

        hub = self.hub_program
        if hub not in (from_program, to_program):
            to_hub = self._rates.get((from_program, hub))
            from_hub = self._rates.get((hub, to_program))
            if to_hub is not None and from_hub is not None:
                rate = to_hub.rate * from_hub.rate
                logger.debug(
                    f"Routed {from_program.value}->{to_program.value} via {hub.value}: "
                    f"{to_hub.rate} x {from_hub.rate} = {rate}"
                )
                return ResolvedRate(
                    from_program=from_program,
                    to_program=to_program,
                    rate=rate,
                    route=[from_program, hub, to_program],
                    last_updated=_oldest(to_hub.last_updated, from_hub.last_updated),
                )

        raise RateNotFoundError(from_program.value, to_program.value, hub.value)

    def resolve_rate(self, from_program: Program, to_program: Program) -> Decimal:
        """Rate such that 1 unit of from_program yields `rate` units of to_program"""
        return self.resolve(from_program, to_program).rate


def _is_newer(candidate: ExchangeRate, existing: ExchangeRate) -> bool:
    if candidate.last_updated is None:
        return existing.last_updated is None
    if existing.last_updated is None:
        return True
    return candidate.last_updated >= existing.last_updated


def _oldest(first, second):
    stamps = [stamp for stamp in (first, second) if stamp is not None]
    return min(stamps) if stamps else None
