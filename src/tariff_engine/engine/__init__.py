"""Engine subpackage - estimate calculation pipeline."""
from .pricing_engine import PricingEngine
from .models import EstimateRequest, EstimateResult, LineItem, SiteAccess

__all__ = ['PricingEngine', 'EstimateRequest', 'EstimateResult', 'LineItem', 'SiteAccess']
