import json
from typing import Optional

import typer

from src.cli.display import DisplayManager
from src.cli.services import AnalysisService, load_market_data
from src.config import load_config
from src.decision.differential_analyzer import run_sync
from src.health import get_health_status
from src.utils.errors import (
    AdapterTimeoutError,
    ConfigurationError,
    DifferentialAnalysisError,
    InvalidInputError,
)


app = typer.Typer(add_completion=False, help="Differential market analysis CLI")

EXIT_INVALID_INPUT = 2
EXIT_UPSTREAM = 3
EXIT_TIMEOUT = 4


@app.command("analyze")
def analyze(
    market_file: str = typer.Argument(..., help="YAML or JSON file with assets, currencies, volumes and financing rates"),
    config_path: str = typer.Option("config.yaml", "--config", "-c", help="Configuration file"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Adapter deadline in seconds"),
    strict_signal: bool = typer.Option(False, "--strict-signal", help="Fail instead of degrading when the signal is unavailable"),
    offline: bool = typer.Option(False, "--offline", help="Use the static rates and signals from the config"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Run a differential analysis over the market data in MARKET_FILE."""
    display = DisplayManager()
    try:
        config = load_config(config_path)
        service = AnalysisService(config, offline=offline)
        data = load_market_data(market_file)
        options = service.build_options(timeout=timeout, strict_signal=strict_signal)
        result = run_sync(service.analyze(data, options))
    except (InvalidInputError, ConfigurationError) as e:
        display.show_error(str(e))
        raise typer.Exit(code=EXIT_INVALID_INPUT)
    except AdapterTimeoutError as e:
        display.show_error(str(e))
        raise typer.Exit(code=EXIT_TIMEOUT)
    except DifferentialAnalysisError as e:
        display.show_error(str(e))
        raise typer.Exit(code=EXIT_UPSTREAM)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        display.show_analysis(result)


@app.command("health")
def health(
    config_path: str = typer.Option("config.yaml", "--config", "-c", help="Configuration file"),
    offline: bool = typer.Option(False, "--offline", help="Check the static adapters"),
):
    """Check configuration, cache and adapter reachability."""
    display = DisplayManager()
    try:
        config = load_config(config_path)
        service = AnalysisService(config, offline=offline)
        rate_oracle = service.build_rate_oracle()
        signal_provider = service.build_signal_provider()
    except ConfigurationError as e:
        display.show_error(str(e))
        raise typer.Exit(code=EXIT_INVALID_INPUT)

    report = run_sync(get_health_status(rate_oracle, signal_provider))
    display.show_health(report)
    if report["status"] == "unhealthy":
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
