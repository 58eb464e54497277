"""Flux Solar credit queue simulation.

Surplus value that the monthly cap leaves uncompensated is converted into
credits ("soles"). Credits are spent oldest first against later bills and
expire after ``expiry_months``. The twelve monthly amounts repeat every
simulated year.
"""

import logging
from collections import deque
from collections.abc import Sequence

from ..models import MONTHS_PER_YEAR, Credit, FluxResult
from ..validators import numeric_vector

logger = logging.getLogger(__name__)

DEFAULT_YEARS = 25
DEFAULT_EXPIRY_MONTHS = 60


def consume_credits(
    queue: deque, bill: float, current_month: int, expiry_months: int = DEFAULT_EXPIRY_MONTHS
) -> tuple[float, float, float]:
    """Spend queued credits against one month's bill.

    Returns the remaining bill, the credit value consumed and the credit
    value discarded as expired. Expired credits at the head of the queue
    are discarded even when there is nothing to pay. A partially used
    credit, or a valid one met by a zero bill, goes back to the front of
    the queue.
    """
    consumed = 0.0
    expired = 0.0
    while queue:
        credit = queue.popleft()
        if current_month - credit.month_of_generation >= expiry_months:
            expired += credit.value
            logger.debug("Credit of %.2f from month %d expired", credit.value, credit.month_of_generation)
            continue

        if bill <= 0:
            queue.appendleft(credit)
            break
        if bill >= credit.value:
            bill -= credit.value
            consumed += credit.value
        else:
            consumed += bill
            queue.appendleft(Credit(credit.value - bill, credit.month_of_generation))
            bill = 0.0
            break
    return bill, consumed, expired


def simulate_credit_queue(
    monthly_bills: Sequence[float],
    monthly_credits: Sequence[float],
    baseline_annual_bill: float,
    years: int = DEFAULT_YEARS,
    expiry_months: int = DEFAULT_EXPIRY_MONTHS,
) -> FluxResult:
    """Run the credit queue month by month over ``years`` years.

    Returns the bills of the last simulated year, the savings of every
    year against ``baseline_annual_bill``, and the credit ledger.
    """
    bills = numeric_vector(monthly_bills, MONTHS_PER_YEAR, "monthly bills")
    credits = numeric_vector(monthly_credits, MONTHS_PER_YEAR, "monthly credits")

    queue: deque[Credit] = deque()
    generated = consumed = expired = 0.0
    annual_savings = []
    current_bill = list(bills)

    for year in range(years):
        current_bill = list(bills)
        for month in range(MONTHS_PER_YEAR):
            current_month = month + MONTHS_PER_YEAR * year
            current_bill[month], used, lost = consume_credits(
                queue, current_bill[month], current_month, expiry_months
            )
            consumed += used
            expired += lost

            if credits[month] > 0:
                queue.append(Credit(credits[month], current_month))
                generated += credits[month]

        annual_savings.append(baseline_annual_bill - sum(current_bill))

    if expired:
        logger.warning("%.2f of credit value expired unused over %d years", expired, years)

    return FluxResult(
        final_year_bills=current_bill,
        annual_savings=annual_savings,
        generated=generated,
        consumed=consumed,
        expired=expired,
        remaining=sum(c.value for c in queue),
        queue=list(queue),
    )
