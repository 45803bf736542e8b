# run_rmg.py
import sys
import logging

from rmg_engine.core.preset import load_preset
from rmg_engine.setup_logging import setup_logging
from rmg_engine.world.analytics import ZoneAnalysis
from rmg_engine.world.template_processor import TemplateProcessor

logger = logging.getLogger(__name__)


def run_rmg(preset_path=None, log_dir="logs"):
    setup_logging(log_dir=log_dir)

    preset = load_preset(preset_path)
    processor = TemplateProcessor(preset)
    report = processor.run()

    logger.info("--- Стадии: %s ---", [stage.name for stage in report.stages_done])
    logger.info("Тайминги, мс: %s", report.timings_ms)
    logger.info("Очки зон: %s", report.scores)
    logger.info("Охрана: %d", len(report.guards))
    if report.assignment is not None:
        logger.info("\n%s", ZoneAnalysis(report.assignment).format_report())
    return report


if __name__ == "__main__":
    logger.info("--- Запуск генератора ---")
    run_rmg(sys.argv[1] if len(sys.argv) > 1 else None)
