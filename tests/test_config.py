"""
Tests for the configuration layer and backend selection.
"""

import pytest
from django.core.exceptions import ImproperlyConfigured

from bhabo.config import AppConfig, DatabaseConfig, EmailConfig, SecurityConfig
from core.config import validate_config_on_startup
from core.exceptions import ConfigurationError
from core.repositories import LocalFileRepository, build_repository


def make_config(backend="local", environment="development", **overrides):
    return AppConfig(
        environment=environment,
        debug=overrides.pop("debug", False),
        database=DatabaseConfig(backend=backend),
        security=overrides.pop("security", SecurityConfig(secret_key="x" * 60, jwt_secret="jwt")),
        email=overrides.pop("email", EmailConfig(user="mailer", password="pw")),
    )


class TestAppConfigValidate:

    def test_clean_config(self):
        assert make_config().validate() == []

    def test_unknown_backend(self):
        issues = make_config(backend="redis").validate()
        assert any(issue.startswith("CRITICAL") and "USED_DB" in issue for issue in issues)

    def test_production_checks(self):
        config = make_config(
            environment="production",
            debug=True,
            security=SecurityConfig(secret_key="django-insecure-short", jwt_secret=""),
        )
        issues = config.validate()
        assert len([issue for issue in issues if issue.startswith("CRITICAL")]) == 2
        assert "WARNING: DEBUG=True in production!" in issues

    def test_missing_mail_credentials_is_informational(self):
        (issue,) = make_config(email=EmailConfig(user="", password="")).validate()
        assert issue.startswith("INFO")


class TestStartupValidation:

    def test_unknown_backend_is_fatal(self):
        with pytest.raises(ImproperlyConfigured, match="USED_DB"):
            validate_config_on_startup(make_config(backend="redis"))

    def test_insecure_development_config_is_tolerated(self):
        config = make_config(security=SecurityConfig(secret_key="django-insecure-dev", jwt_secret=""))
        validate_config_on_startup(config)

    def test_insecure_production_config_is_fatal(self):
        config = make_config(
            environment="production",
            security=SecurityConfig(secret_key="django-insecure-dev", jwt_secret=""),
        )
        with pytest.raises(ImproperlyConfigured):
            validate_config_on_startup(config)


class TestBuildRepository:

    def test_local_backend(self, tmp_path):
        repository = build_repository({"BACKEND": "LOCAL", "LOCAL_DIR": str(tmp_path)})
        assert isinstance(repository, LocalFileRepository)
        assert (tmp_path / "users").is_dir()

    @pytest.mark.parametrize("backend", ["", "redis", None])
    def test_unknown_backend(self, backend):
        with pytest.raises(ConfigurationError) as exc_info:
            build_repository({"BACKEND": backend})
        assert exc_info.value.details["setting"] == "USED_DB"
