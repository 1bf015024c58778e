import argparse
import asyncio
import logging
import sys
from typing import Optional

from app_config import (
    AppConfig,
    AppConfigurationError,
    load_app_config,
    load_secret_config,
    resolve_config_path,
)
from focus import CountdownClock, FocusDuration
from identity import USERNAME_KEY, IdentityError, LocalKeyValueStore, current_username
from notifier import (
    AudioCue,
    CompletionNotifier,
    NotifierConfig,
    NotifierError,
    SoundDeviceAudioOutput,
    load_wav_cue,
    synthesize_chime,
)
from records import BackendConfig, BackendConfigurationError, HttpBackend, RecordReconciler
from runtime import RuntimeBootstrap, SessionRunner
from server import ServerConfigurationError, UIServer, UIServerConfig


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("focus_app")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="focus-session",
        description="Run timed focus sessions and record them per task and day.",
    )
    parser.add_argument("--config", help="Path to config.toml (default: APP_CONFIG_FILE or ./config.toml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("tasks", help="List the tasks available to the current user")

    start = commands.add_parser("start", help="Run one focus session")
    start.add_argument("task", help="Task name from the catalog")
    start.add_argument(
        "minutes",
        type=int,
        choices=[int(item) for item in FocusDuration],
        help="Session length in minutes",
    )

    commands.add_parser("logout", help="Forget the stored username")
    return parser


def build_notifier(
    app_config: AppConfig,
    ui_server: Optional[UIServer],
    logger: logging.Logger,
) -> CompletionNotifier:
    cue: Optional[AudioCue] = None
    output: Optional[SoundDeviceAudioOutput] = None
    try:
        notifier_config = NotifierConfig.from_settings(app_config.notifier)
        if notifier_config.enabled:
            if notifier_config.cue_file:
                cue = load_wav_cue(notifier_config.cue_file, volume=notifier_config.volume)
            else:
                cue = synthesize_chime(volume=notifier_config.volume)
            output = SoundDeviceAudioOutput(
                output_device_index=notifier_config.output_device_index,
                logger=logging.getLogger("notifier.output"),
            )
    except NotifierError as error:
        logger.warning("Completion cue disabled: %s", error)

    return CompletionNotifier(
        cue=cue,
        output=output,
        host=ui_server,
        logger=logging.getLogger("notifier"),
    )


async def start_ui_server(app_config: AppConfig, logger: logging.Logger) -> Optional[UIServer]:
    try:
        config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error(f"UI server configuration error: {error}")
        logger.warning("Continuing without host shell channel.")
        return None

    if not config.enabled:
        return None

    ui_server = UIServer(config=config, logger=logging.getLogger("ui_server"))
    try:
        await ui_server.start()
    except RuntimeError as error:
        logger.error(f"UI server startup failed: {error}")
        logger.warning("Continuing without host shell channel.")
        return None
    return ui_server


async def run_command(
    args: argparse.Namespace,
    *,
    app_config: AppConfig,
    backend_config: BackendConfig,
    username: str,
    logger: logging.Logger,
) -> int:
    ui_server = await start_ui_server(app_config, logger) if args.command == "start" else None
    try:
        async with HttpBackend(backend_config, logger=logging.getLogger("records.http")) as backend:
            reconciler = RecordReconciler(
                backend,
                backend,
                username=username,
                logger=logging.getLogger("records.reconciler"),
            )
            runner = SessionRunner(
                RuntimeBootstrap(
                    logger=logger,
                    username=username,
                    catalog=backend,
                    reconciler=reconciler,
                    notifier=build_notifier(app_config, ui_server, logger),
                    clock=CountdownClock(
                        interval_seconds=app_config.clock.tick_interval_ms / 1000.0,
                        logger=logging.getLogger("focus.clock"),
                    ),
                    ui_server=ui_server,
                )
            )
            if args.command == "tasks":
                return await runner.list_tasks()
            return await runner.run_session(args.task, args.minutes)
    finally:
        if ui_server is not None:
            await ui_server.stop()


def main(argv: Optional[list[str]] = None) -> int:
    """Run the focus session client."""
    args = build_parser().parse_args(argv)
    logger = setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config_path = resolve_config_path(args.config)
        app_config = load_app_config(str(config_path))
        secret_config = load_secret_config()
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error(f"App configuration error: {error}")
        return 1

    identity_store = LocalKeyValueStore(
        app_config.identity.store_file,
        logger=logging.getLogger("identity"),
    )
    try:
        if args.command == "logout":
            if identity_store.remove(USERNAME_KEY):
                logger.info("Logged out.")
            return 0
        username = current_username(identity_store)
    except IdentityError as error:
        logger.error(f"Identity store error: {error}")
        return 1

    if not username:
        logger.error(
            "No username found in %s; log in first.",
            identity_store.path,
        )
        return 1

    try:
        backend_config = BackendConfig.from_settings(
            app_config.backend,
            api_token=secret_config.backend_token,
        )
    except BackendConfigurationError as error:
        logger.error(f"Backend configuration error: {error}")
        return 1

    try:
        return asyncio.run(
            run_command(
                args,
                app_config=app_config,
                backend_config=backend_config,
                username=username,
                logger=logger,
            )
        )
    except KeyboardInterrupt:
        logger.info("Session aborted by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
