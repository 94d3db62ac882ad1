"""Tests for holder link rewriting."""

from presentation_verifier.domain.links import to_wallet_link


def test_rewrites_openid_vc_scheme() -> None:
    link = "openid-vc://?request_uri=https://verifier.test/r/1"

    assert (
        to_wallet_link(link)
        == "https://wallet.verifiablecredentials.dev/siop?request_uri=https://verifier.test/r/1"
    )


def test_uses_custom_wallet_base() -> None:
    assert to_wallet_link("openid-vc://?x=1", "https://wallet.test/open") == (
        "https://wallet.test/open?x=1"
    )


def test_leaves_other_links_unchanged() -> None:
    link = "https://wallet.test/open?x=openid-vc://"

    assert to_wallet_link(link) == link
