import argparse
from pathlib import Path

from fstab_builder.config import settings
from fstab_builder.logging import LoggerFactory, operation_context, setup_logging
from fstab_builder.services.builder import BuilderOptions, FstabBuilder
from fstab_builder.storage.exceptions import FstabBuilderError, ValidationFailedError
from fstab_builder.storage.fstab import FstabFile
from fstab_builder.ui.prompts import TerminalPrompter


def build_parser():
    parser = argparse.ArgumentParser(
        description="Add fstab entries for ext4 and NTFS filesystems"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Also log raw command output")
    parser.add_argument("--log-dir", type=Path, help="Directory for log files")
    parser.add_argument("--fstab", type=Path, help="Mount table to update (default: /etc/fstab)")
    parser.add_argument("--mount-root", type=Path, help="Directory holding mount points (default: /mnt)")
    parser.add_argument(
        "--overwrite",
        choices=settings.OVERWRITE_MODES,
        help="What to do when a UUID is already in the mount table",
    )
    parser.add_argument(
        "--validation",
        choices=settings.VALIDATION_MODES,
        help="Check the table with 'mount -a' or 'findmnt --verify'",
    )
    parser.add_argument(
        "--no-verify-devices",
        action="store_true",
        help="Do not check device nodes and UUID symlinks",
    )
    parser.add_argument("--no-relabel", action="store_true", help="Never offer to relabel ext4 filesystems")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Show entries without writing them")
    return parser


def build_options(args) -> BuilderOptions:
    options = BuilderOptions.from_settings()
    if args.mount_root is not None:
        options.mount_root = args.mount_root
    if args.overwrite is not None:
        options.overwrite_mode = args.overwrite
    if args.validation is not None:
        options.validation_mode = args.validation
    if args.no_verify_devices:
        options.verify_devices = False
    if args.no_relabel:
        options.offer_relabel = False
    options.dry_run = args.dry_run
    return options


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log = LoggerFactory.for_system()

    fstab_path = args.fstab or Path(
        settings.get_setting("fstab_path", settings.DEFAULT_FSTAB_PATH)
    )
    store = FstabFile(
        fstab_path,
        backup_suffix_format=settings.get_setting(
            "backup_suffix_format", settings.DEFAULT_BACKUP_SUFFIX_FORMAT
        ),
    )
    options = build_options(args)

    try:
        with TerminalPrompter() as prompter:
            builder = FstabBuilder(store, prompter, options)
            with operation_context("build", fstab=str(fstab_path)):
                report = builder.run()
                if not report.succeeded:
                    raise ValidationFailedError(fstab_path, report.backup_path)
    except FstabBuilderError as error:
        log.error(f"Error: {error}")
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 1

    log.info(
        f"Run finished: {report.state.value} "
        f"({len(report.entries)} entries, backup {report.backup_path})"
    )
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
