"""
engines/ - Bundle Engine rule and scenario engines

Modules:
    utils.py                 - Rounding and coercion helpers
    decision_tree.py         - JSON decision-tree interpreter
    cap_trigger.py           - YAML CAP trigger evaluation
    algorithm_evaluator.py   - HC items -> CA algorithm scores and CAPs
    service_intensity.py     - Algorithm scores -> weekly service intensity
    category_intensity.py    - Category floors and recommended envelopes
    service_catalog.py       - Service type definitions and rates
    axis_selector.py         - Scenario axis scoring and selection
    scenario_generator.py    - Care bundle scenario generation
    cost_annotation.py       - Weekly cost and budget annotation
    explanation.py           - Rules-based scenario explanations
"""
