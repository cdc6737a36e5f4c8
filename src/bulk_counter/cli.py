"""
Bulk Counter CLI
Main entry point for running a counting session from a camera.

Modes:
  (default)      Count from the camera for the given duration
  --validate     Check configuration validity
  --image PATH   Run detection once on an image file
"""

import argparse
import json
import logging
import signal
import sys
import time
from pathlib import Path
from threading import Event as ThreadEvent
from threading import Thread

from .config import (
    Config,
    ConfigFileWatcher,
    SettingsStore,
    load_config_file,
    load_config_with_env,
    print_validation_result,
    validate_config_full,
)
from .core import FrameWorker, detect_objects, initialize_camera, load_image, read_frame
from .errors import ConfigValidationError, DetectorUnavailableError
from .models import CountSession, Template
from .persistence import SessionJsonWriter
from .session import ActivityMonitor, SessionController

logger = logging.getLogger(__name__)

# Module-level shutdown signal for SIGTERM/SIGINT handling
_shutdown_signal = ThreadEvent()


def _handle_shutdown_signal(signum, _frame):
    """Handle SIGTERM/SIGINT for graceful shutdown."""
    signal_name = "SIGTERM" if signum == signal.SIGTERM else "SIGINT"
    # Note: print is safer than logger in signal handlers
    print(f"\nReceived {signal_name}, initiating graceful shutdown...")
    _shutdown_signal.set()


def _setup_signal_handlers():
    """Register signal handlers for graceful shutdown."""
    signal.signal(signal.SIGTERM, _handle_shutdown_signal)
    signal.signal(signal.SIGINT, _handle_shutdown_signal)


def find_config_file(config_path: str) -> Path | None:
    """
    Find config file in standard locations.

    Search order:
    1. Specified path (if provided and not default)
    2. Current directory (config.yaml)
    3. ~/.config/bulk-counter/config.yaml

    Returns:
        Path to config file, or None if none exists (defaults apply)

    Raises:
        SystemExit: If an explicitly specified file does not exist
    """
    if config_path != "config.yaml":
        specified = Path(config_path)
        if specified.exists():
            return specified
        logger.error(f"Specified config file not found: {config_path}")
        sys.exit(1)

    search_paths = [
        Path.cwd() / "config.yaml",
        Path.home() / ".config" / "bulk-counter" / "config.yaml",
    ]
    for path in search_paths:
        if path.exists():
            logger.info(f"Using config: {path}")
            return path

    logger.info("No config file found, using defaults")
    return None


def load_config(config_path: str = "config.yaml", template: str | None = None) -> tuple[Config, Path | None]:
    """
    Load, override and validate configuration.

    Returns:
        (validated Config, path of the file it came from or None)

    Raises:
        SystemExit: If config cannot be loaded or is invalid
    """
    config_file = find_config_file(config_path)
    try:
        raw = load_config_file(config_file) if config_file else {}
    except (OSError, ConfigValidationError) as e:
        logger.error(str(e))
        sys.exit(1)

    raw = load_config_with_env(raw)
    if template:
        raw.setdefault("detection", {})["template"] = template

    result = validate_config_full(raw)
    if not result.valid:
        print_validation_result(result)
        sys.exit(1)
    for warning in result.warnings:
        logger.warning(warning)

    return result.config, config_file


def build_detector(config: Config):
    """Load the generic detector if the template needs one."""
    if config.detection.template != Template.GENERIC.value:
        return None

    from .core.yolo_detector import YoloDetector

    detector = YoloDetector(config.detection.model_file)
    try:
        detector.load()
    except DetectorUnavailableError as e:
        logger.error(f"{e} - generic detection paused, enter l to reload")
    return detector


def setup_logging(quiet: bool = False) -> None:
    """
    Setup logging configuration.

    Args:
        quiet: If True, only show warnings and errors
    """
    level = logging.WARNING if quiet else logging.INFO

    class ShortNameFormatter(logging.Formatter):
        def format(self, record):
            record.name = record.name.replace("bulk_counter.", "bc.")
            return super().format(record)

    handler = logging.StreamHandler()
    handler.setFormatter(
        ShortNameFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S"
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(level)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Bulk Counter - count repeated objects from a camera feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m bulk_counter 1                      # Count for 1 hour
  python -m bulk_counter 0.25 --template rectangle
  python -m bulk_counter --image shelf.jpg      # One-shot detection
  python -m bulk_counter --validate             # Check config validity

Environment Variables:
  CAMERA_URL                    - Override camera URL from config
  COUNTER_CONFIDENCE_THRESHOLD  - Override detection confidence threshold
  COUNTER_SHEET_ID              - Override target sheet id
        """,
    )

    parser.add_argument(
        "duration",
        type=float,
        nargs="?",
        help="Duration in hours (default: from config.yaml)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Quiet mode - only show warnings and errors",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-t",
        "--template",
        choices=[t.value for t in Template],
        help="Override the detection template",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and show derived settings",
    )
    parser.add_argument(
        "--image",
        metavar="PATH",
        help="Detect objects in one image file and print them as JSON",
    )

    return parser.parse_args(argv)


def parse_duration(duration_arg: float | None, config: Config) -> float:
    """
    Parse duration from command line argument or config.

    Raises:
        SystemExit: If duration is invalid
    """
    if duration_arg is not None:
        if duration_arg <= 0:
            logger.error(f"Invalid duration '{duration_arg}' - must be positive")
            logger.error("Usage: python -m bulk_counter [hours]")
            sys.exit(1)
        return duration_arg
    return config.runtime.default_duration_hours


def print_banner(config: Config, duration_hours: float) -> None:
    """Print system startup banner."""
    settings = config.to_settings()

    print("\n" + "=" * 70)
    print("BULK COUNTER")
    print("=" * 70)
    print(f"\nTemplate: {config.detection.template}")
    print(f"Confidence threshold: {settings.confidence_threshold}")
    dedup = (
        f"on ({settings.deduplication_distance_threshold}px)"
        if settings.enable_deduplication
        else "off"
    )
    print(f"Deduplication: {dedup}")
    print(f"Sleep after: {settings.sleep_timeout_ms / 1000:.0f}s idle")
    print("\nRuntime:")
    print(f"  Duration: {duration_hours} hour(s) ({duration_hours * 60:.0f} minutes)")
    print(f"  Camera: {config.camera.url}")
    print(f"  Sheet: {config.sheet.id}")
    print("  Press Ctrl+C to stop and confirm the current count")
    print("=" * 70)
    print()


def run_validate(config_path: str) -> None:
    """Run validation mode."""
    config_file = find_config_file(config_path)
    try:
        raw = load_config_file(config_file) if config_file else {}
    except (OSError, ConfigValidationError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    result = validate_config_full(load_config_with_env(raw))
    print_validation_result(result)
    sys.exit(0 if result.valid else 1)


def run_image(config: Config, image_path: str) -> None:
    """Run detection on a single image and print the results."""
    try:
        frame = load_image(image_path)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)

    detector = build_detector(config)
    try:
        detections = detect_objects(
            frame,
            config.detection.template,
            config.detection.confidence_threshold,
            detector,
        )
    except DetectorUnavailableError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(
        json.dumps(
            {
                "image": image_path,
                "template": config.detection.template,
                "count": len(detections),
                "detections": [d.to_dict() for d in detections],
            },
            indent=2,
        )
    )


def run_counting(config: Config, config_file: Path | None, duration_hours: float) -> None:
    """Count from the camera until the duration ends or a signal arrives."""
    store = SettingsStore(config.to_settings())
    controller = SessionController(store)
    controller.subscribe(_log_session_event)
    monitor = ActivityMonitor(controller, store)
    worker = FrameWorker(controller, store, build_detector(config))
    watcher = (
        ConfigFileWatcher(config_file, store, config.runtime.config_poll_seconds)
        if config_file
        else None
    )

    cap = initialize_camera(config.camera.url)
    interval = config.camera.capture_interval_ms / 1000
    duration_seconds = duration_hours * 3600

    controller.start(config.detection.template)
    monitor.start()
    if watcher:
        watcher.start()

    start_time = time.time()
    reason = "duration"
    try:
        with SessionJsonWriter(config.output.json_dir, config.sheet.item_name) as writer:
            Thread(
                target=operator_console,
                args=(controller, monitor, writer, config.sheet.id, worker),
                name="OperatorConsole",
                daemon=True,
            ).start()
            try:
                while True:
                    if _shutdown_signal.is_set():
                        reason = "signal"
                        break
                    if time.time() - start_time >= duration_seconds:
                        break

                    if worker.accepts_frames():
                        frame = read_frame(cap)
                        if frame is None:
                            logger.warning("Failed to read frame")
                            reason = "camera"
                            break
                        worker.submit(frame)

                    time.sleep(interval)
            except KeyboardInterrupt:
                reason = "interrupted"

            worker.shutdown()
            confirm_on_shutdown(controller, writer, config.sheet.id)
            print_final_status(controller, reason, time.time() - start_time, writer.filename)
    finally:
        monitor.stop()
        if watcher:
            watcher.stop()
        controller.stop()
        cap.release()


CONSOLE_HELP = (
    "Commands: [enter]=wake  c=confirm  n=count  p=pause  r=resume  x=reset  "
    "l=reload detector  q=quit"
)


def operator_console(
    controller: SessionController,
    monitor: ActivityMonitor,
    writer: SessionJsonWriter,
    sheet_id: str,
    worker: FrameWorker | None = None,
    stream=None,
) -> None:
    """
    Read operator commands from stdin, one per line.

    Any line counts as touch activity. Returns at EOF (e.g. no terminal).
    """
    stream = stream or sys.stdin
    print(CONSOLE_HELP)
    for line in stream:
        command = line.strip().lower()
        monitor.record_activity()

        if command in ("c", "confirm"):
            session = controller.confirm(sheet_id)
            if session is not None:
                writer.write(session)
                print(f"Confirmed {session.total_count} (total {controller.confirmed_count})")
        elif command in ("n", "count"):
            print(f"In view: {controller.capture_count()} | Confirmed: {controller.confirmed_count}")
        elif command in ("p", "pause"):
            controller.pause()
        elif command in ("r", "resume"):
            controller.resume()
        elif command in ("x", "reset"):
            controller.reset()
        elif command in ("l", "reload"):
            reload_detector(worker)
        elif command in ("q", "quit"):
            _shutdown_signal.set()
            return
        elif command:
            print(CONSOLE_HELP)


def reload_detector(worker: FrameWorker | None) -> bool:
    """Reload the generic detector and resume frame processing."""
    if worker is None:
        print("No frame worker running")
        return False
    try:
        worker.reinitialize()
    except DetectorUnavailableError as e:
        print(f"Reload failed: {e}")
        return False
    print("Detector ready - frame processing resumed")
    return True


def confirm_on_shutdown(
    controller: SessionController, writer: SessionJsonWriter, sheet_id: str
) -> CountSession | None:
    """Confirm the open session on exit, unless nothing is left to count."""
    if controller.capture_count() == 0:
        logger.info("Nothing in view at shutdown - no row written")
        return None
    session = controller.confirm(sheet_id)
    if session is not None:
        writer.write(session)
    return session


def _log_session_event(event: dict) -> None:
    event_type = event["event_type"]
    if event_type == "DETECTIONS_UPDATED":
        logger.debug(f"{event['count']} in view ({event['suppressed']} already counted)")
    elif event_type in ("SLEEP_ENTERED", "SLEEP_EXITED", "PROCESSING_ERROR"):
        logger.info(f"{event_type} session={event['session_id']}")


def print_final_status(
    controller: SessionController, reason: str, elapsed: float, output: str
) -> None:
    """Print final status and output file location."""
    print(f"\n{'=' * 70}")
    if reason == "duration":
        print(f"Duration reached - stopped after {elapsed / 60:.1f} minutes")
    elif reason == "camera":
        print("Camera stream ended")
    elif reason == "interrupted":
        print("Interrupted by user (Ctrl+C)")
    elif reason == "signal":
        print("Shutdown signal received (SIGTERM/SIGINT)")
    print(f"Confirmed count: {controller.confirmed_count}")
    print("=" * 70)
    print(f"\nOutput: {output}")
    print(f"{'=' * 70}\n")


def main(argv: list[str] | None = None) -> None:
    """Main orchestrator function."""
    args = parse_args(argv)
    setup_logging(quiet=args.quiet or args.validate or bool(args.image))

    if args.validate:
        run_validate(args.config)
        return

    config, config_file = load_config(args.config, args.template)

    if args.image:
        run_image(config, args.image)
        return

    duration_hours = parse_duration(args.duration, config)
    print_banner(config, duration_hours)
    _setup_signal_handlers()
    run_counting(config, config_file, duration_hours)


if __name__ == "__main__":
    main()
