"""
Demo: Load a DOPLER decision model CSV and print its statistics.

Usage:
    python demo_deserialize.py [model.csv] [--yaml out.yaml]

Without a file argument the built-in example car model is used.
"""

import logging
import sys

from dopler.config import load_config
from dopler.deserializer import DecisionModelDeserializer
from dopler.examples import EXAMPLE_CAR_MODEL_CSV
from dopler.exceptions import DecisionModelError
from dopler.logging_config import configure_logging
from dopler.serialization import model_to_yaml
from dopler.statistics import DecisionModelStatistics


def print_model(model):
    """Pretty-print a DecisionModel."""
    print()
    print("=" * 70)
    print(f"DECISION MODEL: {model.name}  ({model.source})")
    print("=" * 70)
    for decision in model:
        print(f"  {decision.id:<12} {decision.type.value:<8} {decision.question}")
        if decision.range is not None:
            print(f"    range:       {decision.range}")
        if decision.cardinality is not None:
            print(f"    cardinality: {decision.cardinality.min}:{decision.cardinality.max}")
        for rule in decision.rules:
            print(f"    rule:        references {sorted(rule.referenced_ids())}")
    print()


if __name__ == "__main__":
    config = load_config()
    configure_logging(config.log_level)
    logger = logging.getLogger("dopler.demo")

    args = sys.argv[1:]
    yaml_path = None
    if "--yaml" in args:
        i = args.index("--yaml")
        yaml_path = args[i + 1]
        del args[i:i + 2]

    deserializer = DecisionModelDeserializer(config=config)
    try:
        if args:
            model = deserializer.deserialize_from_file(args[0])
        else:
            model = deserializer.deserialize(EXAMPLE_CAR_MODEL_CSV, name="Example Car Model")
    except DecisionModelError as e:
        logger.error("Could not load decision model: %s", e)
        sys.exit(1)

    print_model(model)
    DecisionModelStatistics().log_model_statistics(logger, model)

    if yaml_path:
        with open(yaml_path, "w", encoding="utf-8") as f:
            f.write(model_to_yaml(model))
        print(f"Model exported to {yaml_path}")
