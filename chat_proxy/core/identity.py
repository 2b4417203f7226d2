"""Ermittelt die Client-Kennung, unter der Rate-Limits gezählt werden."""
from starlette.requests import HTTPConnection

UNKNOWN_CLIENT = "unknown"


def client_identifier(request: HTTPConnection, trust_forwarded_for: bool = False) -> str:
    """Liefert die Peer-Adresse der Verbindung.

    X-Forwarded-For ist vom Client frei setzbar und wird daher nur ausgewertet,
    wenn der Proxy explizit hinter einem vertrauenswürdigen Reverse-Proxy läuft.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT
