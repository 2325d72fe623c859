from afterwave.services.pkce import generate_verifier, s256_challenge, verify_s256

# Appendix B of RFC 7636.
RFC_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
RFC_CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_s256_challenge_matches_rfc_vector() -> None:
    assert s256_challenge(RFC_VERIFIER) == RFC_CHALLENGE


def test_verify_s256_accepts_matching_verifier() -> None:
    assert verify_s256(RFC_VERIFIER, RFC_CHALLENGE) is True


def test_verify_s256_rejects_mismatch_and_empty_values() -> None:
    assert verify_s256("not-the-verifier", RFC_CHALLENGE) is False
    assert verify_s256("", RFC_CHALLENGE) is False
    assert verify_s256(RFC_VERIFIER, "") is False
    assert verify_s256("vérifier", RFC_CHALLENGE) is False
    # Non-ASCII characters are not stripped before comparing.
    assert verify_s256(RFC_VERIFIER, RFC_CHALLENGE + "é") is False


def test_generated_verifiers_are_unique_and_verifiable() -> None:
    first, second = generate_verifier(), generate_verifier()
    assert first != second
    assert verify_s256(first, s256_challenge(first))
