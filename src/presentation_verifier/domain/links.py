"""Holder-facing link helpers."""

OPENID_VC_SCHEME = "openid-vc://"
DEFAULT_WALLET_LINK_BASE = "https://wallet.verifiablecredentials.dev/siop"


def to_wallet_link(link: str, wallet_base: str = DEFAULT_WALLET_LINK_BASE) -> str:
    """Rewrite an ``openid-vc://`` request link into an HTTPS wallet deep link."""
    if not link.startswith(OPENID_VC_SCHEME):
        return link
    return wallet_base + link[len(OPENID_VC_SCHEME) :]
