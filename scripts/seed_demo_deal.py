"""
Seed the portfolio with the default single-family rental deal.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.calculations.deal import DealParameters, LineItem
from app.calculations.proforma import proforma_annual
from app.db.database import session_scope, init_db
from app.db.models import Deal

DEMO_NAME = "Demo Duplex"


def main():
    init_db()

    params = DealParameters(
        property_name=DEMO_NAME,
        address="123 Demo St",
        other_income_lines=(LineItem("Parking", 50),),
        other_expense_lines=(LineItem("Lawn care", 80),),
    )
    pf = proforma_annual(params)

    with session_scope() as db:
        existing = db.query(Deal).filter(Deal.property_name == DEMO_NAME).first()
        if existing:
            print(f"Deal '{DEMO_NAME}' already exists (ID: {existing.id})")
            return

        deal = Deal(
            property_name=params.property_name,
            address=params.address,
            purchase_price=params.purchase_price,
            rent_monthly=params.rent_monthly,
            cashflow=pf.cashflow,
            cap_rate=pf.cap_rate,
            cash_on_cash=pf.cash_on_cash,
            snapshot=params.to_dict(),
        )
        db.add(deal)
        db.flush()
        print(f"Created deal: {deal.property_name} (ID: {deal.id})")
        print(f"  NOI {pf.noi:,.0f}  cash flow {pf.cashflow:,.0f}  CoC {pf.cash_on_cash:.2%}")


if __name__ == "__main__":
    main()
