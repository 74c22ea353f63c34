"""Command line entry point for inspecting and rearranging the connection tree."""

import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, Sequence

from gettext import gettext as _

from .config import Config
from .connection_sort import build_tree
from .dnd.logic import DROP_POSITIONS
from .groups import ConnectionTreeManager
from .platform_utils import get_data_dir

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_to_file: bool = True):
    """Set up logging configuration"""
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Clear any existing handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    # Console output stays quiet unless asked for; stdout belongs to the command
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level if verbose else logging.WARNING)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        try:
            log_dir = get_data_dir()
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'conntree.log'),
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"File logging disabled: {e}")

    logging.getLogger('conntree').setLevel(log_level)


def parse_args(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(prog="conntree", description=_("Inspect and rearrange the connection tree"))
    parser.add_argument("--config", help=_("Path to the configuration file"))
    parser.add_argument("--verbose", "-v", action="store_true", help=_("Enable debug logging"))
    parser.add_argument("--no-log-file", action="store_true", help=_("Do not write a log file"))

    commands = parser.add_subparsers(dest="command", required=True)

    show = commands.add_parser("show", help=_("Print the tree as displayed"))
    show.add_argument("--all", action="store_true", help=_("Include children of collapsed groups"))
    show.add_argument("--filter", default="", help=_("Only show items matching this text"))

    move = commands.add_parser("move", help=_("Move an item relative to another"))
    move.add_argument("node_id")
    move.add_argument("target_id")
    move.add_argument("--position", choices=DROP_POSITIONS, default="after")

    move_root = commands.add_parser("move-root", help=_("Move an item to the end of the root level"))
    move_root.add_argument("node_id")

    parents = commands.add_parser("parents", help=_("List groups an item can be moved into"))
    parents.add_argument("node_id")

    commands.add_parser("freeze-sort", help=_("Store the current sort as the custom order"))

    return parser.parse_args(argv)


def _print_tree(manager: ConnectionTreeManager, include_collapsed: bool, query: str):
    if include_collapsed and not query:
        rows = build_tree(manager.nodes, manager.sort_policy, include_collapsed=True)
    else:
        rows = manager.visible_rows(query)

    for node, depth in rows:
        if node.is_group:
            marker = "-" if node.expanded else "+"
            label = f"{marker} {node.name}/"
        else:
            label = f"  {node.name}"
            if node.hostname:
                label += f" ({node.hostname})"
        print(f"{'    ' * depth}{label}  [{node.id}]")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    config = Config(args.config) if args.config else Config()
    verbose = args.verbose or bool(config.get_setting("tree.debug_enabled", False))
    setup_logging(verbose, log_to_file=not args.no_log_file)

    manager = ConnectionTreeManager(config)

    if args.command == "show":
        _print_tree(manager, args.all, args.filter)
        return 0

    if args.command == "parents":
        if manager.get_node(args.node_id) is None:
            print(_("Unknown item: {node_id}").format(node_id=args.node_id), file=sys.stderr)
            return 1
        for choice in manager.selectable_parents(args.node_id):
            suffix = f"  ({choice.reason})" if choice.disabled else ""
            print(f"{choice.group.id}\t{choice.group.name}{suffix}")
        return 0

    if args.command == "freeze-sort":
        changed = manager.freeze_sort_order()
        print(_("Custom order updated") if changed else _("Custom order already matches"))
        return 0

    if args.command == "move":
        result = manager.move(args.node_id, args.target_id, args.position)
    else:
        result = manager.move_to_root(args.node_id)

    if not result.ok:
        print(result.reason, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
