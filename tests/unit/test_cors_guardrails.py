from __future__ import annotations

import pytest

from apps.api_gateway.main import _cors_params


def test_prod_rejects_wildcard_origin(tracker_settings) -> None:
    tracker_settings.app_env = "prod"
    tracker_settings.cors_allowed_origins = "*"
    tracker_settings.cors_allow_credentials = True

    with pytest.raises(RuntimeError):
        _cors_params()


def test_wildcard_disables_credentials(tracker_settings) -> None:
    tracker_settings.app_env = "dev"
    tracker_settings.cors_allowed_origins = "*"
    tracker_settings.cors_allow_credentials = True

    origins, allow_credentials = _cors_params()
    assert origins == ["*"]
    assert allow_credentials is False


def test_csv_origins_keep_credentials(tracker_settings) -> None:
    tracker_settings.app_env = "prod"
    tracker_settings.cors_allowed_origins = "https://app.company.ru,https://admin.company.ru"
    tracker_settings.cors_allow_credentials = True

    origins, allow_credentials = _cors_params()
    assert origins == ["https://admin.company.ru", "https://app.company.ru"]
    assert allow_credentials is True
