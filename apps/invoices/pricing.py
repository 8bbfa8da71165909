from decimal import Decimal, InvalidOperation

# (maximum kWh, credits), checked top-down; above the last row costs MAX_LEAD_COST
LEAD_COST_TABLE = [
    (Decimal('2000'), 1),
    (Decimal('4000'), 2),
    (Decimal('8000'), 4),
    (Decimal('15000'), 6),
    (Decimal('50000'), 8),
]
MAX_LEAD_COST = 10

LEAD_TIER_NAMES = {
    1: 'Residential/Small',
    2: 'Standard Commerce',
    4: 'High Potential',
    6: 'Large Consumer',
    8: 'Industrial',
    10: 'Group A / Power',
}


def calculate_lead_cost(consumption_kwh):
    """
    Credits needed to unlock a client's contact, by monthly consumption

    Negative or unparseable consumption counts as zero.
    """
    try:
        kwh = max(Decimal('0'), Decimal(str(consumption_kwh or 0)))
    except InvalidOperation:
        kwh = Decimal('0')

    for maximum, cost in LEAD_COST_TABLE:
        if kwh <= maximum:
            return cost
    return MAX_LEAD_COST


def get_lead_tier_name(cost):
    return LEAD_TIER_NAMES.get(cost, 'Standard')
