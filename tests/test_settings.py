import pytest

from sheet_ledger.config.settings import Config, validate_configuration


def test_configuration_from_environment_is_valid():
    validate_configuration()


def test_missing_sheet_id(monkeypatch):
    monkeypatch.setattr(Config, "GOOGLE_SHEET_ID", None)

    with pytest.raises(ValueError, match="GOOGLE_SHEET_ID"):
        validate_configuration()


def test_missing_credentials(monkeypatch, tmp_path):
    monkeypatch.setattr(Config, "GOOGLE_CREDENTIALS_JSON", None)
    monkeypatch.setattr(Config, "GOOGLE_SA_PRIVATE_KEY", None)
    monkeypatch.setattr(Config, "CREDENTIALS_PATH", tmp_path / "credentials.json")
    monkeypatch.chdir(tmp_path)

    with pytest.raises(FileNotFoundError):
        validate_configuration()


def test_credentials_file_is_found(monkeypatch, tmp_path):
    credentials_file = tmp_path / "credentials.json"
    credentials_file.write_text("{}")
    monkeypatch.setattr(Config, "GOOGLE_CREDENTIALS_JSON", None)
    monkeypatch.setattr(Config, "GOOGLE_SA_PRIVATE_KEY", None)
    monkeypatch.setattr(Config, "CREDENTIALS_PATH", tmp_path / "elsewhere.json")
    monkeypatch.chdir(tmp_path)

    assert Config.get_credentials_path() == credentials_file
    validate_configuration()


def test_service_account_info_unescapes_newlines(monkeypatch):
    monkeypatch.setattr(Config, "GOOGLE_SA_PRIVATE_KEY", "a\\nb")
    monkeypatch.setattr(Config, "GOOGLE_SA_CLIENT_EMAIL", "x@example.com")

    info = Config.get_service_account_info()

    assert info["private_key"] == "a\nb"
    assert info["token_uri"] == "https://oauth2.googleapis.com/token"


def test_defaults():
    assert Config.TRANSACTIONS_SHEET == "transactions"
    assert Config.DEFAULT_CATEGORY == "一般"
    assert Config.JWT_EXPIRES_IN == "365d"
