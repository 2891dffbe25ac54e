"""
Entry point for the WordPress WXR import tool.
"""

import argparse
import sys

from wxr_import.import_tool import WordPressImportTool, default_confirm
from wxr_import.utils.errors import ParseError, ValidationError

CONFIG_FILE = "config/import_config.json"


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import a WordPress XML export file")
    p.add_argument("file", nargs="?", help="Path to the XML file")
    p.add_argument("--rollback", action="store_true", help="Delete all imported content")
    p.add_argument("--no-pdf", action="store_true", help="Disable downloading PDF files")
    p.add_argument("--config", default=CONFIG_FILE, help="Path to the JSON configuration file")
    p.add_argument("--dry-run", action="store_true", help="Import into a throw-away in-memory store without downloads")
    p.add_argument("--yes", action="store_true", help="Answer yes to every confirmation")
    return p.parse_args(argv)


def main(argv=None) -> int:
    """
    Main function to run the WordPress WXR import tool.
    """
    args = parse_args(argv)
    confirm = (lambda question, default=True: True) if args.yes else default_confirm
    tool = WordPressImportTool(config_file=args.config, confirm=confirm, dry_run=args.dry_run)
    if args.no_pdf:
        tool.config["media"]["allow_pdf"] = False

    input_path = args.file
    if not input_path:
        input_path = input("Please enter the name of the XML file (e.g. export.xml): ").strip()
    if not input_path:
        tool.log_message("No file provided. Aborting.", level="ERROR")
        return 1

    try:
        if args.rollback:
            tool.run_rollback(input_path)
        else:
            tool.run_import(input_path)
    except FileNotFoundError as e:
        tool.log_message(str(e), level="ERROR")
        return 1
    except (ParseError, ValidationError) as e:
        tool.log_message(str(e), level="ERROR")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
