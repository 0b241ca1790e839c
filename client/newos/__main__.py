"""CLI entry point for the NewOS shell.

Usage::

    newos
    newos --root ~/disks/disk0
    newos --config ~/.newos/newos.conf --debug
"""

import argparse
import configparser
import logging
import os
import sys

from . import LocalVolume


DEFAULT_ROOT = os.path.join("~", ".newos", "disk0")
DEFAULT_CONFIG = os.path.join("~", ".newos", "newos.conf")

_COLOR_CHOICES = {"auto": None, "always": True, "never": False}


def _load_config(path, explicit):
    """Load settings from a config file.

    Args:
        path: File path to read.
        explicit: True if the user passed --config (errors are fatal).

    Returns a dict with keys 'root' and 'color' (either may be None).
    """
    if not os.path.exists(path):
        if explicit:
            print("Error: config file not found: {}".format(path),
                  file=sys.stderr)
            sys.exit(1)
        return {}

    config = configparser.ConfigParser()
    try:
        config.read(path)
    except configparser.Error as e:
        if explicit:
            print("Error: failed to parse config file: {}".format(e),
                  file=sys.stderr)
            sys.exit(1)
        print("Warning: failed to parse config file: {}".format(e),
              file=sys.stderr)
        return {}

    result = {}

    # Volume root
    root = config.get("volume", "root", fallback=None)
    if root is not None:
        root = root.strip() or None
    result["root"] = root

    # Color
    color = config.get("shell", "color", fallback="auto").strip().lower()
    if color not in _COLOR_CHOICES:
        if explicit:
            print("Error: invalid color in config file: {!r}".format(color),
                  file=sys.stderr)
            sys.exit(1)
        print("Warning: invalid color in config file: {!r}".format(color),
              file=sys.stderr)
        color = "auto"
    result["color"] = _COLOR_CHOICES[color]

    return result


def _resolve_root(cli_root, env_root, cfg_root):
    """Pick the volume root (CLI > env > config > default)."""
    for candidate in (cli_root, env_root, cfg_root):
        if candidate:
            return os.path.expanduser(candidate)
    return os.path.expanduser(DEFAULT_ROOT)


def main() -> None:
    """Parse arguments and run shell sessions until shutdown or EOF."""
    parser = argparse.ArgumentParser(
        prog="newos",
        description="NewOS interactive shell",
    )
    parser.add_argument(
        "--root",
        default=None,
        metavar="PATH",
        help="Host directory backing the 0:\\ volume "
             "(default: $NEWOS_ROOT or {})".format(DEFAULT_ROOT),
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="Path to config file (default: {})".format(DEFAULT_CONFIG),
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log debug messages to stderr",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # --- Load config file ---
    explicit_config = bool(args.config)
    config_path = os.path.expanduser(args.config or DEFAULT_CONFIG)
    cfg = _load_config(config_path, explicit_config)

    root = _resolve_root(args.root, os.environ.get("NEWOS_ROOT"),
                         cfg.get("root"))
    color = False if args.no_color else cfg.get("color")

    try:
        os.makedirs(root, exist_ok=True)
    except OSError as e:
        print("Error: cannot create volume root {}: {}".format(root, e),
              file=sys.stderr)
        sys.exit(1)
    logging.getLogger(__name__).debug("volume 0: -> %s", root)

    from .shell import NewOSShell
    while True:
        sh = NewOSShell(LocalVolume(root), color=color)
        try:
            sh.cmdloop()
        except KeyboardInterrupt:
            print()
            return
        if not sh.rebooting:
            return


if __name__ == "__main__":
    main()
