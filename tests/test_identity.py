import pytest

from productivity_tracker.identity import (
    EMAIL_NOT_CONFIRMED,
    INVALID_CREDENTIALS,
    AuthError,
    IdentityProvider,
    login_error_message,
)


def make_provider(store, require_confirmation=True):
    sent = []
    provider = IdentityProvider(store, require_confirmation=require_confirmation, mailer=lambda e, t: sent.append((e, t)))
    return provider, sent


def test_sign_up_requires_confirmation_before_sign_in(store):
    identity, sent = make_provider(store)
    result = identity.sign_up("Agent@Example.com", "secret1", "Agent Smith")
    assert result.session_token is None
    assert result.user.role == "agent"
    assert store.profile(result.user.id).email == "agent@example.com"
    assert sent == [("agent@example.com", result.confirmation_token)]

    with pytest.raises(AuthError, match=EMAIL_NOT_CONFIRMED):
        identity.sign_in("agent@example.com", "secret1")

    identity.confirm_email(result.confirmation_token)
    token = identity.sign_in("agent@example.com", "secret1")
    assert identity.get_current_user(token).full_name == "Agent Smith"


def test_sign_up_without_confirmation_starts_session(store):
    identity, _ = make_provider(store, require_confirmation=False)
    result = identity.sign_up("boss@example.com", "secret1", "Boss", role="admin")
    assert identity.get_current_user(result.session_token).is_admin


def test_invalid_credentials(store):
    identity, _ = make_provider(store, require_confirmation=False)
    identity.sign_up("a@example.com", "secret1", "A")
    with pytest.raises(AuthError, match=INVALID_CREDENTIALS):
        identity.sign_in("a@example.com", "wrong-password")
    with pytest.raises(AuthError, match=INVALID_CREDENTIALS):
        identity.sign_in("nobody@example.com", "secret1")


def test_sign_up_validation(store):
    identity, _ = make_provider(store)
    identity.sign_up("a@example.com", "secret1", "A")
    with pytest.raises(AuthError, match="already registered"):
        identity.sign_up("a@example.com", "secret1", "A again")
    with pytest.raises(AuthError):
        identity.sign_up("b@example.com", "123", "B")
    with pytest.raises(AuthError):
        identity.sign_up("not-an-email", "secret1", "C")
    with pytest.raises(AuthError):
        identity.sign_up("d@example.com", "secret1", "D", role="owner")



def test_sign_up_rejects_email_taken_by_existing_profile(seeded_store):
    identity, _ = make_provider(seeded_store, require_confirmation=False)
    with pytest.raises(AuthError, match="already registered"):
        identity.sign_up("alice@example.com", "secret1", "Alice again")
    assert len(seeded_store.select("profiles", email="alice@example.com")) == 1
    assert seeded_store.select("credentials") == []


def test_password_is_stored_hashed(store):
    identity, _ = make_provider(store, require_confirmation=False)
    identity.sign_up("a@example.com", "secret1", "A")
    [credentials] = store.select("credentials", email="a@example.com")
    assert credentials["password_hash"].startswith("pbkdf2:sha256")
    assert "secret1" not in credentials["password_hash"]
    assert identity.sign_in("a@example.com", "secret1")

def test_resend_confirmation_replaces_token(store):
    identity, sent = make_provider(store)
    first = identity.sign_up("a@example.com", "secret1", "A").confirmation_token
    second = identity.resend_confirmation("a@example.com")
    assert second != first
    assert len(sent) == 2
    with pytest.raises(AuthError):
        identity.confirm_email(first)
    identity.confirm_email(second)
    with pytest.raises(AuthError):
        identity.resend_confirmation("a@example.com")
    with pytest.raises(AuthError):
        identity.resend_confirmation("ghost@example.com")


def test_sign_out_and_auth_events(store):
    identity, _ = make_provider(store, require_confirmation=False)
    events = []
    subscription = identity.on_auth_state_change(lambda event, profile: events.append(event))
    token = identity.sign_up("a@example.com", "secret1", "A").session_token
    identity.sign_out(token)
    assert identity.get_current_user(token) is None
    assert events == ["SIGNED_UP", "SIGNED_IN", "SIGNED_OUT"]

    subscription.unsubscribe()
    identity.sign_in("a@example.com", "secret1")
    assert events == ["SIGNED_UP", "SIGNED_IN", "SIGNED_OUT"]


def test_login_error_message_mapping():
    assert "confirm your email" in login_error_message(AuthError(EMAIL_NOT_CONFIRMED))
    assert login_error_message(AuthError(INVALID_CREDENTIALS)) == "Invalid email or password. Please try again."
    assert login_error_message(AuthError("Rate limit exceeded")) == "Rate limit exceeded"
    assert login_error_message(AuthError()) == "An error occurred"
