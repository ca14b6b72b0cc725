"""
Routes du checkout « commande à 0 ».

- GET  /checkout/zero-order/widget: fragment HTML du widget (vide si la commande est payante)
- POST /checkout: soumission du formulaire hôte
    - action=create_setup_intent -> JSON {success, client_secret, stripe_customer_id} | {error}
    - sinon: retrait des champs de paiement natifs + validation -> {status, fields} | 400 {errors}
- POST /checkout/orders/{order_id}/accept: étape d'acceptation (persistance du moyen de paiement)
"""
from typing import Optional
import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse

from cardcheck import config
from cardcheck.pricing.cart import Cart
from cardcheck.setup_intents.service import issue_guest_setup_intent
from cardcheck.utils.rate_limit import optional_rate_limit
from cardcheck.utils.security import client_ip, session_cart, session_client_id, session_currency_id
from cardcheck.zero_order.errors import NotConfigured, ZeroOrderError
from . import acceptance, gatekeeper, widget

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout", tags=["Checkout"])

CREATE_SETUP_INTENT_ACTION = "create_setup_intent"

# Émission invitée: création de clients Stripe sans authentification
_guest_intent_limiter = optional_rate_limit(
    times=config.GUEST_INTENT_RATE_LIMIT_TIMES,
    seconds=config.GUEST_INTENT_RATE_LIMIT_SECONDS,
)

@router.get("/zero-order/widget", response_class=HTMLResponse)
def zero_order_widget(request: Request, total: Optional[str] = None):
    cart = Cart.from_session(session_cart(request), session_currency_id(request, config.DEFAULT_CURRENCY_ID))
    html = widget.render_checkout_output(
        cart,
        rendered_total=total,
        client_id=session_client_id(request),
        ip_address=client_ip(request),
    )
    return HTMLResponse(html)

@router.post("")
async def submit_checkout(request: Request):
    form = dict(await request.form())

    if form.get("action") == CREATE_SETUP_INTENT_ACTION:
        await _guest_intent_limiter(request)
        try:
            grant = issue_guest_setup_intent(
                email=str(form.get("email") or ""),
                firstname=str(form.get("firstname") or ""),
                lastname=str(form.get("lastname") or ""),
                ip_address=client_ip(request),
            )
        except NotConfigured as e:
            return JSONResponse({"error": e.message}, status_code=503)
        except ZeroOrderError as e:
            return JSONResponse({"error": e.message}, status_code=400)
        return grant.to_ajax()

    uid = session_client_id(request)
    fields = gatekeeper.strip_native_payment_fields(form, user_id=uid, ip_address=client_ip(request))
    errors = gatekeeper.validate_checkout(fields)
    if errors:
        return JSONResponse({"errors": errors}, status_code=400)
    return {"status": "ok", "fields": sorted(fields.keys())}

@router.post("/orders/{order_id}/accept")
async def accept_order(order_id: int, request: Request):
    form = dict(await request.form())
    result = acceptance.accept_order(order_id, form, ip_address=client_ip(request))
    return result.to_dict()
