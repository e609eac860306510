from .base import ExchangeRateProvider
from .freecurrencyapi import FreeCurrencyAPIProvider

__all__ = ['ExchangeRateProvider', 'FreeCurrencyAPIProvider']
