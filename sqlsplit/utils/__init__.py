from sqlsplit.utils import logging

__all__ = ("logging",)
