# cardcheck.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

"""
Configuration centrale du service de validation de carte pour commandes à 0.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets (Stripe, Supabase, clé de chiffrement des cartes)
- Paramètres du widget (chargement de Stripe.js, nombre de tentatives)
- Sécurité cookies, CORS/hosts, session
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Supabase: URLs et clés (anon pour les lectures, service pour les écritures)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé publique (widget) et clé secrète (appels serveur)
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or os.getenv("STRIPE_PUBLISHABLE_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_GATEWAY_NAME = "stripe"

# Stripe.js: URL de secours et attente bornée côté navigateur
STRIPE_JS_URL = _clean_env(os.getenv("STRIPE_JS_URL") or "https://js.stripe.com/v3/")
STRIPE_WAIT_MAX_ATTEMPTS = int(os.getenv("STRIPE_WAIT_MAX_ATTEMPTS", "50"))
STRIPE_WAIT_INTERVAL_MS = int(os.getenv("STRIPE_WAIT_INTERVAL_MS", "100"))

# Clé Fernet pour chiffrer l'identifiant pm_... stocké dans creditcards.card_data
CARD_DATA_ENCRYPTION_KEY = _clean_env(os.getenv("CARD_DATA_ENCRYPTION_KEY") or "")

# Devise utilisée si la session n'en porte pas
DEFAULT_CURRENCY_ID = int(os.getenv("DEFAULT_CURRENCY_ID", "1"))

# Mode strict: exige un SetupIntent confirmé avant d'honorer le drapeau de validation
ZERO_ORDER_VERIFY_SETUP_INTENT = _flag("ZERO_ORDER_VERIFY_SETUP_INTENT")

# Émission invitée (AJAX): chaque appel crée un client Stripe
GUEST_INTENT_RATE_LIMIT_TIMES = int(os.getenv("GUEST_INTENT_RATE_LIMIT_TIMES", "5"))
GUEST_INTENT_RATE_LIMIT_SECONDS = int(os.getenv("GUEST_INTENT_RATE_LIMIT_SECONDS", "60"))
RATE_LIMIT_REDIS_URL = _clean_env(os.getenv("RATE_LIMIT_REDIS_URL") or "redis://127.0.0.1:6379/0")

# Cookies / session
COOKIE_SECURE = _flag("COOKIE_SECURE")
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
