from benefitflow.api.v1 import flows

__all__ = ["flows"]
