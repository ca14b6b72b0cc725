"""
Contrôleur du formulaire de validation: modèle exécutable du script embarqué dans
templates/zero_order_widget.html. Les deux partagent les états, les champs et les libellés
définis dans cardcheck.checkout.widget; toute évolution du script se répercute ici.

Machine à états: IDLE -> AWAITING_INTENT -> AWAITING_CONFIRMATION -> VALIDATED.
- on_page_ready: revérifie le total visible, monte l'élément carte, masque les champs natifs
- on_submit: intercepte la soumission tant que la carte n'est pas validée; une soumission
  pendant une requête en cours est ignorée
- en cas de succès: injection des champs cachés puis une seule resoumission native
- en cas d'échec: message affiché, bouton réactivé, retour à IDLE

Les effets de page (DOM) et le SDK Stripe sont des ports injectés: CheckoutPage et
CardSetupProvider. ProviderWaiter reproduit l'attente bornée de Stripe.js.
"""
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol
import logging

from cardcheck import config
from cardcheck.pricing.cart import parse_formatted_total
from . import gatekeeper
from .widget import (
    ADDRESS_FIELDS,
    COMPLETE_LABEL,
    GENERIC_INTENT_ERROR,
    IDENTITY_FIELDS,
    VERIFYING_LABEL,
    WIDGET_STATES,
)

logger = logging.getLogger(__name__)

IntentRequester = Callable[[Dict[str, str]], Awaitable[Dict[str, Any]]]


class ControllerState(str, Enum):
    IDLE = WIDGET_STATES["IDLE"]
    AWAITING_INTENT = WIDGET_STATES["AWAITING_INTENT"]
    AWAITING_CONFIRMATION = WIDGET_STATES["AWAITING_CONFIRMATION"]
    VALIDATED = WIDGET_STATES["VALIDATED"]


class CheckoutPage(Protocol):
    def total_text(self) -> Optional[str]: ...
    def mount_card_element(self) -> Any: ...
    def hide_native_payment_fields(self) -> None: ...
    def identity_fields(self) -> Dict[str, str]: ...
    def add_hidden_field(self, name: str, value: str) -> None: ...
    def show_error(self, message: str) -> None: ...
    def clear_error(self) -> None: ...
    def set_submit_state(self, disabled: bool, label: str) -> None: ...
    def show_success(self) -> None: ...
    def submit(self) -> None: ...


class CardSetupProvider(Protocol):
    async def confirm_card_setup(self, client_secret: str, card: Any, billing_details: Dict[str, str]) -> Dict[str, Any]: ...


class SubmitEvent:
    """Événement de soumission minimal (prevent_default comme dans le navigateur)."""

    def __init__(self):
        self.default_prevented = False

    def prevent_default(self) -> None:
        self.default_prevented = True


# module cardcheck.checkout.form_controller
class ProviderWaiter:
    """
    Attend que le SDK soit disponible: max_attempts vérifications espacées de interval secondes,
    puis chargement dynamique. on_ready est appelé une seule fois.
    """

    def __init__(
        self,
        is_available: Callable[[], bool],
        load_script: Callable[[Callable[[], None]], None],
        on_ready: Callable[[], None],
        max_attempts: int = config.STRIPE_WAIT_MAX_ATTEMPTS,
        interval: float = config.STRIPE_WAIT_INTERVAL_MS / 1000.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._is_available = is_available
        self._load_script = load_script
        self._on_ready = on_ready
        self._max_attempts = max_attempts
        self._interval = interval
        self._loop = loop
        self.attempts = 0
        self.loaded_dynamically = False
        self.done = False

    def start(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._check()

    def _finish(self) -> None:
        if self.done:
            return
        self.done = True
        self._on_ready()

    def _check(self) -> None:
        if self.done:
            return
        self.attempts += 1
        if self._is_available():
            self._finish()
        elif self.attempts < self._max_attempts:
            self._loop.call_later(self._interval, self._check)
        else:
            self.loaded_dynamically = True
            self._load_script(self._finish)


class ValidationFormController:
    def __init__(
        self,
        page: CheckoutPage,
        provider: CardSetupProvider,
        request_intent: IntentRequester,
        client_secret: str = "",
        customer_id: str = "",
    ):
        self.page = page
        self.provider = provider
        self.request_intent = request_intent
        self.client_secret = client_secret
        self.customer_id = customer_id
        self.state = ControllerState.IDLE
        self.mounted = False
        self.in_flight = False
        self.resubmitted = False
        self.task: Optional[asyncio.Task] = None
        self._card: Any = None

    def on_page_ready(self) -> bool:
        """Monte le widget si le total visible n'est pas positif (ou introuvable)."""
        text = self.page.total_text()
        if text is not None:
            total = parse_formatted_total(text)
            if total is not None and total > 0:
                return False
        self._card = self.page.mount_card_element()
        self.page.hide_native_payment_fields()
        self.mounted = True
        return True

    def on_card_change(self, error_message: Optional[str]) -> None:
        if error_message:
            self.page.show_error(error_message)
        else:
            self.page.clear_error()

    def on_submit(self, event: SubmitEvent) -> bool:
        """True si la soumission native peut continuer, False si elle est interceptée."""
        if not self.mounted or self.state is ControllerState.VALIDATED:
            return True
        event.prevent_default()
        if self.in_flight:
            return False

        self.in_flight = True
        self.page.clear_error()
        self.page.set_submit_state(True, VERIFYING_LABEL)
        self.state = ControllerState.AWAITING_CONFIRMATION if self.client_secret else ControllerState.AWAITING_INTENT
        self.task = asyncio.ensure_future(self._run())
        return False

    async def _run(self) -> None:
        if self.state is ControllerState.AWAITING_INTENT:
            try:
                identity = self.page.identity_fields()
                data = await self.request_intent({name: identity.get(name, "") for name in IDENTITY_FIELDS})
            except Exception:
                logger.warning("checkout.form_controller: requête SetupIntent en échec", exc_info=True)
                data = {}
            if not data or data.get("error") or not data.get("client_secret"):
                self._fail((data or {}).get("error") or GENERIC_INTENT_ERROR)
                return
            self.client_secret = data["client_secret"]
            self.customer_id = data.get("stripe_customer_id") or ""
            self.state = ControllerState.AWAITING_CONFIRMATION

        try:
            result = await self.provider.confirm_card_setup(self.client_secret, self._card, self._billing_details())
        except Exception:
            logger.warning("checkout.form_controller: confirmation carte en échec", exc_info=True)
            self._fail(GENERIC_INTENT_ERROR)
            return

        error = result.get("error")
        if error:
            self._fail((error or {}).get("message") or GENERIC_INTENT_ERROR)
            return
        self._validated(result.get("setupIntent") or {})

    def _billing_details(self) -> Dict[str, Any]:
        """Nom/email toujours; téléphone et adresse seulement s'ils sont saisis."""
        identity = self.page.identity_fields()
        name = f"{identity.get('firstname', '')} {identity.get('lastname', '')}".strip()
        details: Dict[str, Any] = {"name": name, "email": identity.get("email", "")}
        if identity.get("phonenumber"):
            details["phone"] = identity["phonenumber"]
        address = {key: identity[field] for field, key in ADDRESS_FIELDS.items() if identity.get(field)}
        if address:
            details["address"] = address
        return details

    def _fail(self, message: str) -> None:
        self.page.show_error(message)
        self.page.set_submit_state(False, COMPLETE_LABEL)
        self.state = ControllerState.IDLE
        self.in_flight = False

    def _validated(self, setup_intent: Dict[str, Any]) -> None:
        payment_method = setup_intent.get("payment_method") or ""
        self.state = ControllerState.VALIDATED
        self.page.add_hidden_field(gatekeeper.PAYMENT_METHOD_FIELD, payment_method)
        self.page.add_hidden_field(gatekeeper.CUSTOMER_FIELD, self.customer_id)
        self.page.add_hidden_field(gatekeeper.REMOTE_STORAGE_TOKEN_FIELD, payment_method)
        self.page.add_hidden_field(gatekeeper.SETUP_INTENT_FIELD, setup_intent.get("id") or "")
        self.page.add_hidden_field(gatekeeper.FLAG_FIELD, "1")
        self.page.show_success()
        self.in_flight = False
        if not self.resubmitted:
            self.resubmitted = True
            self.page.submit()
