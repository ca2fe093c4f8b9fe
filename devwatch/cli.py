#!/usr/bin/env python3
"""
devwatch CLI entry point: watch udev devices and log net changes
"""

from __future__ import annotations
import sys
import argparse
import signal
import os
import logging
import logging.handlers
import traceback
from pathlib import Path

from devwatch.__version__ import __version__

# Global logger instance
logger = None


def setup_logging(debug: bool = False, log_file: str | None = None, trace: bool = False) -> logging.Logger:
    """Setup logging to both console and file

    Args:
        debug: Enable debug level logging
        log_file: Path to log file (default: ~/.devwatch.log)
        trace: Also log every raw udev event (TRACE level)
    """
    global logger

    if logger is not None:
        return logger

    from devwatch.log import TRACE, console_level

    # Create logger
    logger = logging.getLogger('devwatch')
    if trace:
        logger.setLevel(TRACE)
    else:
        logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Default log file location
    if log_file is None:
        log_file = os.path.expanduser('~/.devwatch.log')

    # Format for logs
    fmt = logging.Formatter(
        '[%(asctime)s] %(levelname)-8s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler (rotate log file when it gets too large)
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10 MB
            backupCount=5  # Keep 5 old log files
        )
        file_handler.setLevel(TRACE if trace else logging.DEBUG)
        file_handler.setFormatter(fmt)
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

    # Console handler (only warnings in production, all in debug)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level(debug, trace))
    console_handler.setFormatter(fmt)
    logger.addHandler(console_handler)

    return logger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='devwatch',
        description='Watch hot-plugged udev devices and report net additions and removals',
    )
    parser.add_argument('--subsystem', default=None, help='Only devices of this subsystem')
    parser.add_argument('--device-type', default=None, help='Only devices of this device type')
    parser.add_argument(
        '--attr', action='append', default=[], metavar='NAME=VALUE',
        help='Required sysfs attribute value (repeatable)'
    )
    parser.add_argument(
        '--property', action='append', default=[], metavar='NAME=VALUE',
        help='Required udev property value (repeatable)'
    )
    parser.add_argument('--tag', action='append', default=[], help='Required udev tag (repeatable)')
    parser.add_argument(
        '--input-kind', action='append', default=[], choices=['keyboard', 'mouse'],
        help='Only input event nodes of this kind (repeatable)'
    )
    parser.add_argument('--config', type=str, default=None, help='Path to config file')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode with verbose logging')
    parser.add_argument('--trace', action='store_true', help='Log every raw udev event (implies --debug)')
    parser.add_argument(
        '--logfile', type=str, default=None,
        help='Path to log file (default: ~/.devwatch.log)'
    )
    parser.add_argument('--version', action='version', version='%(prog)s ' + __version__)
    return parser.parse_args(argv)


def merge_args(config: dict, args: argparse.Namespace) -> dict:
    """Overlay command-line match options on a loaded config."""
    from devwatch.config import validate_config
    from devwatch.device.criteria import parse_match_pairs

    merged = dict(config)
    if args.subsystem is not None:
        merged['subsystem'] = args.subsystem
    if args.device_type is not None:
        merged['device_type'] = args.device_type
    if args.attr:
        merged['attributes'] = {**config['attributes'], **parse_match_pairs(args.attr, '--attr')}
    if args.property:
        merged['properties'] = {**config['properties'], **parse_match_pairs(args.property, '--property')}
    if args.tag:
        merged['tags'] = list(dict.fromkeys(config['tags'] + args.tag))
    if args.input_kind:
        merged['input_kinds'] = list(dict.fromkeys(args.input_kind))
    if args.debug:
        merged['debug'] = True
    return validate_config(merged)


def build_watcher(config: dict, loop):
    """Create a FilteredDeviceWatcher for *config* that logs every change."""
    from devwatch.device.criteria import MatchCriteria
    from devwatch.device.watcher import FilteredDeviceWatcher
    from devwatch.input.capabilities import input_kind_predicate
    from devwatch.log import format_device

    log = logging.getLogger('devwatch')
    criteria = MatchCriteria.from_config(config)
    predicate = input_kind_predicate(config['input_kinds']) if config['input_kinds'] else None

    def on_added(description) -> None:
        log.info("+ %s", format_device(description))

    def on_removed(description) -> None:
        log.info("- %s", format_device(description))

    return FilteredDeviceWatcher(
        criteria,
        predicate,
        loop=loop,
        on_device_added=on_added,
        on_device_removed=on_removed,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for devwatch"""
    args = parse_args(argv)

    # Setup logging first
    log = setup_logging(debug=args.debug or args.trace, log_file=args.logfile, trace=args.trace)

    log.info(f"{'='*60}")
    log.info(f"devwatch started (version {__version__})")
    log.info(f"PID: {os.getpid()}")
    log.info(f"{'='*60}")

    # Import after args parsing to avoid import-time side effects
    from devwatch.config import load_config
    from devwatch.errors import ConfigurationError, EnumerationError, NativeResourceError
    from devwatch.loop import SelectorLoop

    try:
        log.debug(f"Loading config from: {args.config or 'default'}")
        config = merge_args(load_config(args.config, args.debug), args)
        watcher_loop = SelectorLoop()
        watcher = build_watcher(config, watcher_loop)
    except ConfigurationError as e:
        log.error(f"Invalid configuration: {e}")
        return 1

    state = {'running': True, 'rescan': False}

    def stop_handler(signum: int, frame) -> None:
        log.info(f"Received {signal.Signals(signum).name}, shutting down")
        state['running'] = False
        watcher_loop.stop()

    def rescan_handler(signum: int, frame) -> None:
        state['rescan'] = True

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)
    signal.signal(signal.SIGHUP, rescan_handler)

    try:
        watcher.set_active(True)
        log.info(f"Watching {len(watcher.registry)} device(s)")

        while state['running']:
            watcher_loop.run_once(1.0)
            if state['rescan']:
                state['rescan'] = False
                log.info("Rescan requested")
                try:
                    result = watcher.scan()
                except EnumerationError as e:
                    # registry is untouched; keep serving monitor events
                    log.warning(f"Rescan failed, keeping {len(watcher.registry)} known device(s): {e}")
                    log.debug(traceback.format_exc())
                else:
                    log.info(f"Rescan: +{result.added} -{result.removed} ({result.known} known)")
        return 0

    except NativeResourceError as e:
        log.error(f"udev error: {e}")
        log.debug(traceback.format_exc())
        return 1

    except KeyboardInterrupt:
        log.info("devwatch terminated by user (Ctrl+C)")
        return 0

    finally:
        watcher.close()
        watcher_loop.close()
        log.info("devwatch shutdown")


if __name__ == '__main__':
    sys.exit(main())
