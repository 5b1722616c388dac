from datetime import datetime

from gigmarket.main import create_app
from gigmarket.services.order_service import expire_stale_order, find_stale_orders

# -------------------------------------------------------------------
# Removes open orders nobody took: scheduled date already passed, or
# no scheduled date and posted more than STALE_ORDER_DELETE_DAYS ago.
# Run from cron; safe to run repeatedly.
# -------------------------------------------------------------------


def expire_stale_orders(now=None):
    now = now or datetime.utcnow()
    stale = find_stale_orders(now)
    print(f"🧹 {len(stale)} stale open order(s) found")

    removed = 0
    for order in stale:
        order_id, created_at = order.id, order.created_at
        if expire_stale_order(order_id):
            removed += 1
            print(f"🗑️  {order_id} | created {created_at}")
        else:
            print(f"⚠️  {order_id} changed meanwhile: skipping")

    print(f"\n✅ Removed {removed} order(s).")
    return removed


# -------------------------------------------------------------------
# ENTRY POINT
# -------------------------------------------------------------------

if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        expire_stale_orders()
