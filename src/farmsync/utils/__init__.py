"""Utility functions for farmsync."""

from farmsync.utils.date_parser import parse_timestamp
from farmsync.utils.amount_parser import parse_amount
from farmsync.utils.ids import generate_temp_id, is_temp_id, new_client_id

__all__ = ["parse_timestamp", "parse_amount", "generate_temp_id", "is_temp_id", "new_client_id"]
