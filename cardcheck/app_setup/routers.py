"""
Registre central des routers.
- Checkout: widget, soumission du formulaire, acceptation de commande
- Health: état général et configuration du flux « commande à 0 »
"""
from fastapi import FastAPI
from cardcheck.checkout.views import router as checkout_router
from cardcheck.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(checkout_router)
    app.include_router(health_router)
