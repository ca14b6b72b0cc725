"""
Taxonomie des erreurs du flux « commande à 0 ».

- NotConfigured: clés Stripe/chiffrement absentes -> fonctionnalité désactivée, jamais fatal au checkout
- NotFound: identité locale (client/commande) introuvable
- ResolverFailed / IssueFailed: appel Stripe en échec (message du fournisseur propagé, pas de retry)
- PersistenceFailed: unité d'écriture annulée (aucune ligne partielle)
- ValidationBypassAttempt: drapeau de validation présent sans confirmation corrélable côté serveur
"""


class ZeroOrderError(Exception):
    """Base commune; `message` est destiné aux logs et, pour IssueFailed, au widget."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotConfigured(ZeroOrderError):
    pass


class NotFound(ZeroOrderError):
    pass


class ResolverFailed(ZeroOrderError):
    pass


class IssueFailed(ZeroOrderError):
    pass


class PersistenceFailed(ZeroOrderError):
    pass


class ValidationBypassAttempt(ZeroOrderError):
    pass


class CardDataError(ZeroOrderError):
    """card_data illisible (clé changée ou donnée altérée)."""
