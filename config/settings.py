from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.models.rates import TimeUnit


class Settings(BaseSettings):
	FREECURRENCYAPI_API_KEY: str = ''
	FREECURRENCYAPI_BASE_URL: str = 'https://api.freecurrencyapi.com/v1'
	REQUEST_TIMEOUT: float = 5.0

	# Rates to watch. Empty means the provider's defaults.
	BASE_CURRENCY: str = ''
	CURRENCIES: str = ''

	UPDATE_INTERVAL: float = 30
	UPDATE_INTERVAL_UNIT: str = 'minutes'

	# Logging
	LOG_DIRECTORY: str = 'logs'
	LOG_LEVEL: str = 'INFO'
	LOG_TO_FILE: bool = True

	APP_NAME: str = 'Currency Rates Watcher'

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')

	@property
	def currency_set(self) -> set[str]:
		return {c.strip().upper() for c in self.CURRENCIES.split(',') if c.strip()}

	@property
	def interval_unit(self) -> TimeUnit:
		return TimeUnit.parse(self.UPDATE_INTERVAL_UNIT)


@lru_cache
def get_settings() -> Settings:
	return Settings()
