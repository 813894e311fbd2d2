# Core modules
from .models import CurrencyPairEntry, VolatilityPoint, ExportKind, PendingState, AppSettings
from .ticker_mapper import TickerMapper, get_ticker_mapper
from .volatility_surface import VolatilitySurfaceBuilder
from .mx3_export import ExportFormatter
from .import_state import ImportExportState, Schedule
from .pair_registry import CurrencyPairRegistry
