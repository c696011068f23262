# main.py
import sys
import argparse
import logging

from config import load_config, setup_directories
from logger import setup_logger
from ui import CashierUI

logger = logging.getLogger("pos_system")


def parse_arguments():
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description="Python POS System")
    parser.add_argument("--config", help="Path to configuration file", default="config.json")
    parser.add_argument("--catalog", help="Catalog file (.json, .csv or .xlsx), overrides the config")
    parser.add_argument("--debug", help="Enable debug mode", action="store_true")
    return parser.parse_args()


def main():
    try:
        args = parse_arguments()

        config = load_config(args.config)
        if args.catalog:
            config["catalog"]["path"] = args.catalog

        setup_logger(config, debug=args.debug)
        logger.debug("Debug mode enabled")

        setup_directories(config)

        app = CashierUI(config)
        logger.info("Starting POS application")
        app.run()

    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
