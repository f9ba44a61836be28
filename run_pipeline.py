"""Train the success model from a training-data export. Use: python run_pipeline.py export.json"""
import argparse
import asyncio
import sys
from pathlib import Path

from success_signal_ai.config import TRAINING_DATA_FILE
from success_signal_ai.errors import SuccessSignalError
from success_signal_ai.model import ApplicationSuccessModel, ModelStore
from success_signal_ai.services import TrainingPipeline
from success_signal_ai.storage import JsonFileKeyValueStore, TrainingDataStore
from success_signal_ai.utils.logger import get_logger

logger = get_logger("run_pipeline")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("export", nargs="?", type=Path, help="JSON export to import before training")
    parser.add_argument("--data-file", type=Path, default=TRAINING_DATA_FILE, help="Training data store file")
    parser.add_argument("--model-dir", type=Path, default=None, help="Where the trained model is written")
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--tune", action="store_true", help="Grid-search learning rate and batch size first")
    parser.add_argument("--report", type=Path, default=None, help="Also write the report JSON here")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = _parse_args(argv)
    store = TrainingDataStore(JsonFileKeyValueStore(args.data_file))
    if args.export:
        added = await store.import_training_data(args.export.read_text(encoding="utf-8"))
        logger.info("Imported %s records from %s", added, args.export)

    pipeline = TrainingPipeline(store, ApplicationSuccessModel(store=ModelStore(args.model_dir)))
    overrides = {"hyperparameter_tuning": args.tune}
    if args.epochs is not None:
        overrides["epochs"] = args.epochs
    if args.seed is not None:
        overrides["seed"] = args.seed

    try:
        report = await pipeline.run_pipeline(**overrides)
    except SuccessSignalError as e:
        logger.error("Training failed: %s", e)
        return 1

    text = pipeline.export_report(report)
    if args.report:
        args.report.write_text(text, encoding="utf-8")
    print(text)
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
