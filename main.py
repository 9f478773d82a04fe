#!/usr/bin/env python
"""
Streamflow HPO - Main Entry Point
Cross-validated model selection and hyperparameter search for mean streamflow (q_mean) regression.
"""
import sys
import logging
import argparse
import traceback
import random
from pathlib import Path

import numpy as np

from modules.config_manager import ConfigurationManager
from modules.logging_config import LoggingConfigurator
from modules.search_controller import SearchController
from utils.exceptions import StreamflowMLException


def parse_arguments(argv=None):
    """
    Parse command-line arguments for configurable pipeline execution.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Streamflow HPO - cross-validated model selection and hyperparameter search",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--schema",
        type=str,
        default="config/schema.json",
        help="Path to the configuration JSON schema"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier (defaults to timestamp if not provided)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and setup without running the search"
    )

    return parser.parse_args(argv)


def setup_global_determinism(config: dict, logger: logging.Logger):
    """
    Seed the global generators. Engines receive explicit seeds; this only
    covers third-party code that falls back to the global state.
    """
    seed = config['splitting']['seed']
    logger.info(f"Setting Global Deterministic Seed: {seed}")
    random.seed(seed)
    np.random.seed(seed)


def setup_run_directory(config: dict, run_id: str, logger: logging.Logger) -> Path:
    """
    Create the run directory: <base_results_dir>_<run_id> when a run id was given
    on the command line, otherwise <base_results_dir>.
    """
    base_results_dir = config.get('outputs', {}).get('base_results_dir', 'results')
    run_dir = Path(f"{base_results_dir}_{run_id}" if run_id else base_results_dir).absolute()

    if config['outputs'].get('save_artifacts', True):
        run_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Run directory: {run_dir}")
    return run_dir


def main(argv=None):
    """
    Main pipeline orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors, 130 when interrupted)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        print("\n" + "=" * 80)
        print("    STREAMFLOW HYPERPARAMETER SEARCH")
        print("=" * 80 + "\n")

        # ---------------------------------------------------------------
        # PHASE 0: INITIALIZATION & VALIDATION
        # ---------------------------------------------------------------
        config_manager = ConfigurationManager(config_path=args.config, schema_path=args.schema)
        config = config_manager.load_and_validate()

        if args.verbose:
            config['logging']['level'] = 'DEBUG'

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('pipeline')
        logger.info(f"Configuration loaded from: {args.config}")

        run_dir = setup_run_directory(config, args.run_id, logger)
        config_manager.run_id = args.run_id
        run_id = config_manager.generate_run_id()
        config['outputs']['base_results_dir'] = str(run_dir)

        if config['outputs'].get('save_artifacts', True):
            config_manager.save_artifacts(str(run_dir))

        setup_global_determinism(config, logger)
        logger.info(f"Run ID: {run_id}")

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without running the search.")
            print("\n[SUCCESS] Configuration validated successfully.")
            return 0

        # ---------------------------------------------------------------
        # PHASES 1-4: SEARCH
        # ---------------------------------------------------------------
        controller = SearchController(config, logger)
        result = controller.run(run_id=run_id)

        # ---------------------------------------------------------------
        # COMPLETION
        # ---------------------------------------------------------------
        best = result.selected_configuration
        logger.info("\n" + "-" * 60)
        logger.info("SEARCH COMPLETED SUCCESSFULLY")
        logger.info(f"Selected: {best.model_name} {dict(best.params)}")
        logger.info(f"Test metrics: {result.test_metrics}")
        logger.info(f"Output Directory: {run_dir}")
        logger.info("-" * 60 + "\n")

        print(result.summary)
        print(f"\n[SUCCESS] Search completed. Results saved to: {run_dir}")
        return 0

    except StreamflowMLException as e:
        msg = f"Pipeline Error: {str(e)}"
        print(f"\n[ERROR] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Search interrupted by user.")
        if logger:
            logger.warning("Search interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
