"""Model-wide counts for a loaded DecisionModel."""

import logging

from dopler.model import DecisionModel


class DecisionModelStatistics:
    """Counts questions (variability elements) and rules (constraints)."""

    def variability_elements_count(self, model: DecisionModel) -> int:
        return model.size()

    def constraints_count(self, model: DecisionModel) -> int:
        return sum(len(decision.rules) for decision in model)

    def log_model_statistics(self, logger: logging.Logger, model: DecisionModel) -> None:
        logger.info("#Questions: %d", self.variability_elements_count(model))
        logger.info("#Rules: %d", self.constraints_count(model))
