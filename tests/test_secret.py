import pytest

from backlogctl.oauth import OAuthTokens
from backlogctl.secret import (
    Backend,
    CredentialError,
    CredentialStore,
    FileStore,
    current_api_key,
    delete_api_key,
    delete_oauth_tokens,
    get_api_key,
    get_oauth_tokens,
    set_api_key,
    set_oauth_tokens,
)


class FailingStore(CredentialStore):
    backend = Backend.KEYRING

    def set(self, space_key, api_key):
        raise CredentialError("keyring unavailable")

    def get(self, space_key):
        raise CredentialError("keyring unavailable")

    def delete(self, space_key):
        raise CredentialError("keyring unavailable")


def file_store(directory):
    return FileStore(directory / "credentials.toml")


def sample_tokens():
    return OAuthTokens(
        client_id="client-id",
        client_secret="secret",
        access_token="token",
        refresh_token="token",
    )


def test_set_and_get_roundtrip_via_file(tmp_path):
    stores = [file_store(tmp_path)]
    api_key = "placeholder"
    set_api_key("mycompany", api_key, stores)
    assert get_api_key("mycompany", stores) == ("placeholder", Backend.FILE)


def test_get_returns_error_when_key_missing(tmp_path):
    with pytest.raises(CredentialError):
        get_api_key("mycompany", [file_store(tmp_path)])


def test_delete_removes_key(tmp_path):
    stores = [file_store(tmp_path)]
    set_api_key("mycompany", "placeholder", stores)
    delete_api_key("mycompany", stores)
    with pytest.raises(CredentialError):
        get_api_key("mycompany", stores)


def test_get_falls_back_to_second_store(tmp_path):
    first = tmp_path / "one"
    second = tmp_path / "two"
    file_store(second).set("mycompany", "placeholder")
    key, backend = get_api_key("mycompany", [file_store(first), file_store(second)])
    assert key == "placeholder"
    assert backend == Backend.FILE


def test_set_uses_first_available_store(tmp_path):
    first = tmp_path / "one"
    second = tmp_path / "two"
    backend = set_api_key("mycompany", "placeholder", [file_store(first), file_store(second)])
    assert backend == Backend.FILE
    assert get_api_key("mycompany", [file_store(first)])[0] == "placeholder"
    with pytest.raises(CredentialError):
        get_api_key("mycompany", [file_store(second)])


def test_set_multiple_keys(tmp_path):
    stores = [file_store(tmp_path)]
    set_api_key("space1", "token", stores)
    set_api_key("space2", "secret", stores)
    assert get_api_key("space1", stores)[0] == "token"
    assert get_api_key("space2", stores)[0] == "secret"


def test_backend_display():
    assert Backend.KEYRING.__str__() == "System keyring"
    assert Backend.FILE.__str__() == "Credentials file"
    assert Backend.ENV.__str__() == "Environment variable"


def test_set_falls_back_to_second_store_when_first_fails(tmp_path, capsys):
    backend = set_api_key("mycompany", "placeholder", [FailingStore(), file_store(tmp_path)])
    assert backend == Backend.FILE
    assert get_api_key("mycompany", [file_store(tmp_path)])[0] == "placeholder"
    err = capsys.readouterr().err
    assert "System keyring unavailable (keyring unavailable)" in err
    assert "falling back to next store" in err


def test_set_returns_error_when_all_stores_fail():
    with pytest.raises(CredentialError, match="keyring unavailable"):
        set_api_key("mycompany", "placeholder", [FailingStore()])


def test_set_with_no_stores_raises():
    with pytest.raises(CredentialError, match="No credential store available"):
        set_api_key("mycompany", "placeholder", [])


def test_get_with_no_stores_reports_login_hint():
    with pytest.raises(CredentialError, match="bl auth login"):
        get_api_key("mycompany", [])


def test_delete_ignores_failing_stores(tmp_path):
    stores = [FailingStore(), file_store(tmp_path)]
    set_api_key("mycompany", "placeholder", [file_store(tmp_path)])
    delete_api_key("mycompany", stores)
    with pytest.raises(CredentialError):
        get_api_key("mycompany", [file_store(tmp_path)])


def test_file_store_delete_without_file_creates_nothing(tmp_path):
    store = file_store(tmp_path)
    store.delete("mycompany")
    assert not store.path.exists()


def test_file_store_writes_keys_table(tmp_path):
    store = file_store(tmp_path)
    store.set("mycompany", "placeholder")
    assert "[keys]" in store.path.read_text(encoding="utf-8")
    assert store.load() == {"mycompany": "placeholder"}


def test_file_store_get_raises_on_corrupt_file(tmp_path):
    store = file_store(tmp_path)
    store.path.write_text("not = [valid", encoding="utf-8")
    with pytest.raises(CredentialError, match="Failed to parse credentials"):
        store.get("mycompany")


def test_file_store_set_overwrites_corrupt_file(tmp_path):
    store = file_store(tmp_path)
    store.path.write_text("not = [valid", encoding="utf-8")
    store.set("mycompany", "placeholder")
    assert store.get("mycompany") == "placeholder"


def test_current_api_key_prefers_environment(monkeypatch):
    monkeypatch.setenv("BL_API_KEY", "token")
    assert current_api_key("mycompany") == ("token", Backend.ENV)


def test_oauth_tokens_roundtrip(tmp_path):
    path = tmp_path / "oauth_tokens.toml"
    set_oauth_tokens("mycompany", sample_tokens(), path)
    tokens, backend = get_oauth_tokens("mycompany", path)
    assert tokens == sample_tokens()
    assert backend == Backend.FILE


def test_oauth_tokens_missing_space_raises(tmp_path):
    path = tmp_path / "oauth_tokens.toml"
    with pytest.raises(CredentialError, match="OAuth tokens not found for space 'mycompany'"):
        get_oauth_tokens("mycompany", path)


def test_oauth_tokens_multiple_spaces(tmp_path):
    path = tmp_path / "oauth_tokens.toml"
    other = OAuthTokens(
        client_id="other-client",
        client_secret="secret",
        access_token="token",
        refresh_token="token",
    )
    set_oauth_tokens("space1", sample_tokens(), path)
    set_oauth_tokens("space2", other, path)
    assert get_oauth_tokens("space1", path)[0].client_id == "client-id"
    assert get_oauth_tokens("space2", path)[0].client_id == "other-client"


def test_delete_oauth_tokens(tmp_path):
    path = tmp_path / "oauth_tokens.toml"
    set_oauth_tokens("mycompany", sample_tokens(), path)
    delete_oauth_tokens("mycompany", path)
    with pytest.raises(CredentialError):
        get_oauth_tokens("mycompany", path)


def test_delete_oauth_tokens_without_file(tmp_path):
    path = tmp_path / "oauth_tokens.toml"
    delete_oauth_tokens("mycompany", path)
    assert not path.exists()


def test_oauth_tokens_corrupt_entry_raises(tmp_path):
    path = tmp_path / "oauth_tokens.toml"
    path.write_text('[tokens.mycompany]\nclient_id = "client-id"\n', encoding="utf-8")
    with pytest.raises(CredentialError, match="oauth_tokens.toml"):
        get_oauth_tokens("mycompany", path)