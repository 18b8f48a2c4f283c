"""End-to-end CLI runs against the offline (static) adapters."""
import json
import logging

import pytest
import yaml
from typer.testing import CliRunner

from src.cli.main import EXIT_INVALID_INPUT, EXIT_UPSTREAM, app
from src.cli.services import AnalysisService, load_market_data
from src.config import Config
from src.data_collection.providers import CachedRateOracle, ExchangeRateHostOracle, StaticRateOracle
from src.prediction import RemoteSignalProvider
from src.utils.errors import InvalidInputError


runner = CliRunner()


@pytest.fixture(autouse=True)
def drop_runner_log_handlers():
    """Config loading inside the runner binds log handlers to its captured streams."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if isinstance(handler, logging.StreamHandler) and getattr(handler.stream, "closed", False):
            root.removeHandler(handler)


@pytest.fixture
def quiet_config(tmp_path, config_data):
    config_data['logging'] = {'level': 'ERROR', 'format': 'text'}
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.dump(config_data))
    return str(path)


def test_analyze_json_output(quiet_config, market_file):
    result = runner.invoke(app, ["analyze", market_file, "--config", quiet_config, "--offline", "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["status"] == "degraded"
    assert [r["asset"] for r in payload["recommendations"]] == ["AAPL", "SAP", "VOD"]
    assert payload["recommendations"][0]["action"] == "strong_buy"
    assert payload["signal_degraded"] == {"AAPL": False, "SAP": False, "VOD": True}
    assert payload["margins"]["VOD"] == pytest.approx(0.005)


def test_analyze_table_output(quiet_config, market_file):
    result = runner.invoke(app, ["analyze", market_file, "--config", quiet_config, "--offline"])

    assert result.exit_code == 0, result.output
    assert "Strong Buy" in result.stdout
    assert "degraded" in result.stdout


def test_analyze_invalid_market_file(quiet_config, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({
        "assets": ["A"],
        "currencies": ["USD"],
        "trade_volumes": {"A": -5},
        "financing_rates": {"A": 0.01},
        "base_currencies": {"A": "USD"},
    }))
    result = runner.invoke(app, ["analyze", str(bad), "--config", quiet_config, "--offline"])

    assert result.exit_code == EXIT_INVALID_INPUT
    assert "Error" in result.stdout


def test_analyze_missing_rate_is_fatal(tmp_path, config_data, market_file):
    config_data['logging'] = {'level': 'CRITICAL', 'format': 'text'}
    config_data['providers']['static']['rates'] = {'USD': 1.0, 'EUR': 1.1}
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.dump(config_data))

    result = runner.invoke(app, ["analyze", market_file, "--config", str(path), "--offline"])

    assert result.exit_code == EXIT_UPSTREAM
    assert "GBP" in result.stdout


def test_health_offline(quiet_config):
    result = runner.invoke(app, ["health", "--config", quiet_config, "--offline"])
    assert result.exit_code == 0, result.output
    assert "healthy" in result.stdout


def test_service_builds_cached_oracle(tmp_path, config_data):
    config_data['cache']['rates_ttl'] = 30
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.dump(config_data))

    service = AnalysisService(Config(str(path)), offline=True)
    oracle = service.build_rate_oracle()

    assert isinstance(oracle, CachedRateOracle)
    assert isinstance(oracle.inner, StaticRateOracle)


def test_service_options_overrides(temp_config_file):
    service = AnalysisService(Config(temp_config_file), offline=True)
    options = service.build_options(timeout=0.5, strict_signal=True)

    assert options.timeout == 0.5
    assert options.allow_degraded_signal is False
    assert options.correlation_id


def test_load_market_data_missing_file(tmp_path):
    with pytest.raises(InvalidInputError):
        load_market_data(str(tmp_path / "nope.yaml"))


def test_load_market_data_bad_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("assets: [unclosed")
    with pytest.raises(InvalidInputError):
        load_market_data(str(path))


def test_analyze_malformed_asset_entry(quiet_config, tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text(yaml.dump({"assets": {"AAPL": 5}}))
    result = runner.invoke(app, ["analyze", str(bad), "--config", quiet_config, "--offline"])

    assert result.exit_code == EXIT_INVALID_INPUT
    assert "AAPL" in result.stdout


def test_analyze_unknown_provider_is_config_error(tmp_path, config_data, market_file):
    config_data['logging'] = {'level': 'ERROR', 'format': 'text'}
    config_data['providers']['rate_oracle'] = 'nonexistent'
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.dump(config_data))

    result = runner.invoke(app, ["analyze", market_file, "--config", str(path)])

    assert result.exit_code == EXIT_INVALID_INPUT
    assert "nonexistent" in result.stdout


def test_health_unknown_provider_is_config_error(tmp_path, config_data):
    config_data['logging'] = {'level': 'ERROR', 'format': 'text'}
    config_data['providers']['signal_provider'] = 'nonexistent'
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.dump(config_data))

    result = runner.invoke(app, ["health", "--config", str(path)])

    assert result.exit_code == EXIT_INVALID_INPUT


def test_service_passes_api_keys_from_environment(monkeypatch, tmp_path, config_data):
    monkeypatch.setenv('EXCHANGE_RATE_HOST_API_KEY', 'fx-key')
    monkeypatch.setenv('SIGNAL_API_KEY', 'model-key')
    config_data['providers']['rate_oracle'] = 'exchange_rate_host'
    config_data['providers']['signal_provider'] = 'remote'
    config_data['providers']['remote_signal'] = {'base_url': 'http://model.local'}
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.dump(config_data))

    service = AnalysisService(Config(str(path)))

    assert isinstance(service.build_rate_oracle(), ExchangeRateHostOracle)
    assert service.build_rate_oracle().api_key == 'fx-key'
    provider = service.build_signal_provider()
    assert isinstance(provider, RemoteSignalProvider)
    assert provider.api_key == 'model-key'
