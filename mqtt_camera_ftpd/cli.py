"""
CLI entry point for mqtt-camera-ftpd
"""

import sys
import time

import click
import yaml

from mqtt_camera_ftpd.config import (
    EVENTS_LOG_NAME,
    ConfigValidationError,
    load_config,
    resolve_config_dir,
)
from mqtt_camera_ftpd.logging_utils import get_component_logger, setup_structured_logging

logger = get_component_logger(__name__, "cli")

config_dir_option = click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding config.yml and events.log (default: $CONFIG_DIR or cwd)",
)


def _load_or_exit(config_dir):
    try:
        return load_config(config_dir)
    except ConfigValidationError as e:
        logger.error(str(e), extra={"event": "config_invalid"})
        sys.exit(1)


@click.group()
def main():
    """MQTT Camera FTPd - FTP snapshot uploads to MQTT motion events"""
    pass


@main.command()
@config_dir_option
@click.option(
    "--json-logs",
    is_flag=True,
    default=False,
    envvar="JSON_LOGS",
    help="Output logs in JSON format for log aggregation (env: JSON_LOGS)",
)
@click.option(
    "--log-level",
    default="INFO",
    envvar="LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Console log level (default: $LOG_LEVEL or INFO)",
)
def serve(config_dir, json_logs, log_level):
    """Run the FTP server and publish uploads to MQTT"""
    from mqtt_camera_ftpd.bridge import CameraBridge
    from mqtt_camera_ftpd.broker import BrokerConnectionError

    config_dir = resolve_config_dir(config_dir)
    setup_structured_logging(
        level=log_level,
        json_format=json_logs,
        output_file=str(config_dir / EVENTS_LOG_NAME),
    )

    logger.info("Loading configuration", extra={"event": "config_load", "config_dir": str(config_dir)})
    config = _load_or_exit(config_dir)

    bridge = CameraBridge(config)
    try:
        bridge.start()
    except (BrokerConnectionError, OSError) as e:
        logger.error(f"Startup failed: {e}", extra={"event": "startup_failed", "error_type": type(e).__name__})
        sys.exit(1)

    bridge.install_signal_handlers()
    bridge.serve_forever()


@main.command("show-config")
@config_dir_option
def show_config(config_dir):
    """Print the effective configuration (creates config.yml if missing)"""
    setup_structured_logging(level="WARNING")
    config = _load_or_exit(config_dir)
    click.echo(yaml.safe_dump(config.to_status_dict(), sort_keys=False), nl=False)


@main.command()
@config_dir_option
def watch(config_dir):
    """Print motion/image events published by the bridge"""
    from mqtt_camera_ftpd.monitor import EventMonitor

    setup_structured_logging(level="WARNING")
    config = _load_or_exit(config_dir)

    monitor = EventMonitor(config.mqtt, lambda event: click.echo(event.describe()))
    monitor.start()

    click.echo(f"Watching {config.mqtt.preface}/+/motion and {config.mqtt.preface}/+/image (Ctrl+C to exit)")
    try:
        while monitor.is_alive():
            time.sleep(0.5)
    except KeyboardInterrupt:
        monitor.stop()


if __name__ == "__main__":
    main()
