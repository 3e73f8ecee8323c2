from . import events, orders, sitemaps, stripe, xs2

ROUTERS = (
    xs2.router,
    orders.router,
    stripe.router,
    events.router,
    sitemaps.router,
)

__all__ = ["ROUTERS"]
