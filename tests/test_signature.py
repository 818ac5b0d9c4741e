import hashlib
import hmac

from domain.services.signature import SignatureVerifier, compute_signature, payment_payload

from helpers import KEY_SECRET, WEBHOOK_SECRET


def _hex(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def test_payment_signature_round_trip(verifier):
    signature = _hex(KEY_SECRET, b"order_1|pay_1")
    assert payment_payload("order_1", "pay_1") == "order_1|pay_1"
    assert verifier.sign_payment("order_1", "pay_1") == signature
    assert verifier.verify_payment("order_1", "pay_1", signature) is True


def test_payment_signature_rejects_swapped_ids(verifier):
    signature = verifier.sign_payment("order_1", "pay_1")
    assert verifier.verify_payment("pay_1", "order_1", signature) is False


def test_payment_signature_rejects_malformed_input(verifier):
    good = verifier.sign_payment("order_1", "pay_1")
    assert verifier.verify_payment("order_1", "pay_1", None) is False
    assert verifier.verify_payment("order_1", "pay_1", "") is False
    assert verifier.verify_payment("order_1", "pay_1", good[:-2]) is False
    assert verifier.verify_payment("order_1", "pay_1", "é" * len(good)) is False
    assert verifier.verify_payment(None, "pay_1", good) is False
    assert verifier.verify_payment("", "pay_1", good) is False
    assert verifier.verify_payment("order_1", 42, good) is False


def test_missing_secret_never_verifies():
    verifier = SignatureVerifier(None)
    assert verifier.verify_payment("order_1", "pay_1", "a" * 64) is False
    assert verifier.verify_webhook(b"{}", "a" * 64) is False


def test_webhook_signature_uses_webhook_secret(verifier):
    body = b'{"event":"payment.captured"}'
    assert verifier.verify_webhook(body, _hex(WEBHOOK_SECRET, body)) is True
    assert verifier.verify_webhook(body, _hex(KEY_SECRET, body)) is False


def test_webhook_signature_is_over_exact_bytes(verifier):
    body = b'{"event": "payment.captured"}'
    signature = compute_signature(body, WEBHOOK_SECRET)
    assert verifier.verify_webhook(body.decode(), signature) is True
    assert verifier.verify_webhook(body.replace(b" ", b""), signature) is False
    assert verifier.verify_webhook(None, signature) is False


def test_webhook_secret_falls_back_to_key_secret():
    verifier = SignatureVerifier(KEY_SECRET)
    body = b"{}"
    assert verifier.verify_webhook(body, _hex(KEY_SECRET, body)) is True
