from .dbm import DBM, backing_store_errors
from .expiry import ExpiryTask, run_expiry
from .provision import provision_schema

__all__ = ["DBM", "backing_store_errors", "ExpiryTask", "run_expiry", "provision_schema"]
