import os
import sys
from types import SimpleNamespace
from unittest.mock import patch

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from discovery_mcp import versions
from discovery_mcp.config import ServiceConfig, load_config_from_env
from discovery_mcp.errors import ConfigurationError
from discovery_mcp.versions import EffectiveVersion, negotiate, resolve_epoch


def _config(**overrides):
    values = {
        "username": "batman",
        "password": "bruce-wayne",
        "url": "http://ibm.com:80",
        "api_version": "v1",
        "version_date": versions.VERSION_DATE_2017_08_01,
    }
    values.update(overrides)
    return ServiceConfig(**values)


@pytest.mark.parametrize("version_date", [None, "", "   "])
def test_config_requires_version_date(version_date):
    with pytest.raises(ConfigurationError) as excinfo:
        _config(version_date=version_date)
    assert excinfo.value.code == "DISCOVERY_CONFIG_ERROR"
    assert "version_date" in excinfo.value.message


def test_config_strips_trailing_slash():
    config = _config(url="http://ibm.com:80/")
    assert config.url == "http://ibm.com:80"
    assert config.service_url == "http://ibm.com:80/v1"


def test_negotiate_rejects_missing_date():
    with pytest.raises(ConfigurationError):
        negotiate(SimpleNamespace(version_date=None))
    with pytest.raises(ConfigurationError):
        negotiate(SimpleNamespace())


@pytest.mark.parametrize(
    "version_date,epoch",
    [
        (versions.VERSION_DATE_2016_12_15, EffectiveVersion.V2016_12_15),
        (versions.VERSION_DATE_2017_04_27, EffectiveVersion.V2017_04_27),
        (versions.VERSION_DATE_2017_08_01, EffectiveVersion.V2017_08_01),
        ("2017-05-01", EffectiveVersion.V2017_04_27),
        ("2018-03-05", EffectiveVersion.V2017_08_01),
        ("2015-01-01", EffectiveVersion.V2016_12_15),
    ],
)
def test_negotiate_passes_date_through_and_resolves_epoch(version_date, epoch):
    negotiated = negotiate(_config(version_date=version_date))
    assert negotiated.date == version_date
    assert negotiated.epoch is epoch


def test_unparseable_date_uses_newest_epoch():
    assert resolve_epoch("latest") is EffectiveVersion.V2017_08_01


def test_load_config_from_env():
    env = {
        "DISCOVERY_USERNAME": "batman",
        "DISCOVERY_PASSWORD": "bruce-wayne",
        "DISCOVERY_URL": "http://ibm.com:80",
        "DISCOVERY_VERSION_DATE": "2017-08-01",
    }
    with patch.dict(os.environ, env, clear=True):
        config = load_config_from_env()
    assert config == _config()


def test_load_config_from_env_requires_version_date():
    with patch.dict(os.environ, {"DISCOVERY_USERNAME": "batman"}, clear=True):
        with pytest.raises(ConfigurationError) as excinfo:
            load_config_from_env()
    assert excinfo.value.details == {"missing": ["DISCOVERY_VERSION_DATE"]}
