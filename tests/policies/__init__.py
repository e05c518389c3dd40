"""
Policy tests for policypack.

Runs each compiled-in rule through the evaluator to ensure:
- Non-compliant resources are reported with the rule's enforcement level
- Compliant resources and absent structure produce no violations
"""
