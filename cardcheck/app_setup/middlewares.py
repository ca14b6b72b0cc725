from fastapi import Request, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.sessions import SessionMiddleware
try:
    from starlette.middleware.proxy_headers import ProxyHeadersMiddleware
except Exception:
    ProxyHeadersMiddleware = None
from cardcheck.config import SUPABASE_URL, COOKIE_SECURE, CORS_ORIGINS, ALLOWED_HOSTS, SESSION_SECRET_KEY

"""
Middlewares transverses de l'application.
- register_basic_middlewares: session (panier/devise/uid de la plateforme), CORS, TrustedHost, X-Forwarded-*.
- register_security_middleware: en-têtes de sécurité et CSP ouverte à Stripe.js / API Stripe.
- register_no_cache_middleware: aucune mise en cache des réponses /checkout (client_secret).
"""

# Origines nécessaires à Stripe.js (script, iframe des Elements, appels API)
STRIPE_SCRIPT_SOURCES = ["https://js.stripe.com"]
STRIPE_FRAME_SOURCES = ["https://js.stripe.com", "https://hooks.stripe.com"]
STRIPE_CONNECT_SOURCES = ["https://api.stripe.com"]

def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET_KEY, https_only=COOKIE_SECURE)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )
    # Fait confiance aux en-têtes X-Forwarded-* (Render, Nginx, etc.)
    if ProxyHeadersMiddleware:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")

        csp_connect = ["'self'"] + STRIPE_CONNECT_SOURCES
        if SUPABASE_URL:
            csp_connect.append(SUPABASE_URL.rstrip("/"))

        # Le fragment du widget est inséré dans la page hôte: pas de frame-ancestors 'none' ici
        csp = (
            "default-src 'self'; "
            "base-uri 'self'; object-src 'none'; "
            "img-src 'self' data: https://*.stripe.com; "
            "style-src 'self' 'unsafe-inline'; "
            f"script-src 'self' 'unsafe-inline' {' '.join(STRIPE_SCRIPT_SOURCES)}; "
            f"frame-src {' '.join(STRIPE_FRAME_SOURCES)}; "
            f"connect-src {' '.join(csp_connect)}"
        )
        response.headers["Content-Security-Policy"] = csp
        return response

def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_cache_for_checkout(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/checkout"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response
