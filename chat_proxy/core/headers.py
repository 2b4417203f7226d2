"""Security-Header, die der Proxy an jede Antwort hängt."""
from typing import Dict

CSP_DIRECTIVES = {
    "default-src": ["'self'"],
    "script-src": ["'self'", "'unsafe-inline'", "https://cdn.jsdelivr.net"],
    "connect-src": ["'self'"],
    "img-src": ["'self'", "https:", "data:"],
    "style-src": ["'self'", "'unsafe-inline'"],
    "font-src": ["'self'", "https:"],
    "object-src": ["'none'"],
    "media-src": ["'self'"],
    "frame-src": ["'none'"],
}


def build_csp(upstream_origin: str) -> str:
    directives = {name: list(sources) for name, sources in CSP_DIRECTIVES.items()}
    if upstream_origin:
        directives["connect-src"].append(upstream_origin.rstrip("/"))
    return "; ".join(f"{name} {' '.join(sources)}" for name, sources in directives.items())


def security_headers(upstream_origin: str) -> Dict[str, str]:
    return {
        "Content-Security-Policy": build_csp(upstream_origin),
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
        "X-DNS-Prefetch-Control": "off",
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "X-Permitted-Cross-Domain-Policies": "none",
    }
