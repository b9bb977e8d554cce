from functools import lru_cache
import os
from typing import Dict, List, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    project_name: str = "HaulBase API"
    environment: str = "development"

    cors_origins_raw: Optional[str] = Field(
        default=None,
        alias="CORS_ORIGINS"
    )

    @computed_field
    @property
    def backend_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from environment variable (comma-separated string)."""
        raw = self.cors_origins_raw or os.environ.get("BACKEND_CORS_ORIGINS") or ""
        if not raw.strip():
            return []

        origins = []
        for origin in raw.split(","):
            origin = origin.strip()
            if origin:
                if origin.lower().startswith("https://"):
                    origin = "https://" + origin[8:]
                elif origin.lower().startswith("http://"):
                    origin = "http://" + origin[7:]
                origins.append(origin)
        return origins

    database_url: str  # Required - no default, must be set in .env

    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    auth_cookie_name: str = "haulbase_token"

    enable_scheduler: bool = True

    # OpenAI (financial insights)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4"

    # Recurring billing
    recurring_billing_store: str = "database"  # database or memory
    recurring_billing_interval_minutes: int = 60
    default_tax_rate: float = 8.5
    default_payment_terms_days: int = 30
    setup_fee_due_days: int = 7
    upcoming_invoice_window_days: int = 30

    # Reporting and financial health heuristics
    estimated_expense_ratio: float = 0.7
    estimated_cash_flow_ratio: float = 0.2
    operational_efficiency: float = 0.85
    profitability_score_multiplier: float = 3.0
    liquidity_score_multiplier: float = 25.0
    growth_score_baseline: float = 50.0
    growth_score_multiplier: float = 2.0
    health_factor_positive_threshold: float = 70.0
    health_factor_neutral_threshold: float = 40.0
    expense_growth_alert_threshold: float = 25.0
    on_time_delivery_rate: float = 95.5  # Used until delivery tracking reports actuals
    customer_satisfaction_score: float = 4.7
    top_n_results: int = 10
    dashboard_top_insights: int = 5

    # Payroll withholding (simplified flat rates)
    federal_withholding_rate: float = 0.22
    state_withholding_rate: float = 0.06
    social_security_rate: float = 0.062
    medicare_rate: float = 0.0145
    overtime_multiplier: float = 1.5
    overtime_weekly_threshold_hours: float = 40.0
    pay_periods_per_year: Dict[str, int] = Field(
        default_factory=lambda: {
            "weekly": 52,
            "bi_weekly": 26,
            "semi_monthly": 24,
            "monthly": 12,
        }
    )

    # Subscription plan pricing in cents
    plan_pricing: Dict[str, int] = Field(
        default_factory=lambda: {
            "starter": 9900,
            "professional": 14900,
            "enterprise": 29900,
        }
    )

    # Stripe Configuration for Billing
    stripe_test_secret_key: Optional[str] = None
    stripe_live_secret_key: Optional[str] = None
    stripe_use_live_mode: bool = False
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_product_id: Optional[str] = None

    def _is_valid_stripe_key(self, key: Optional[str]) -> bool:
        """Check if a Stripe key is valid (not None and not a placeholder)"""
        if not key:
            return False
        placeholders = ["CHANGE_ME", "change_me", "YOUR_", "your_", "PLACEHOLDER", "placeholder"]
        return not any(p in key for p in placeholders)

    def get_stripe_secret_key(self) -> Optional[str]:
        """Get the appropriate Stripe secret key based on mode, with fallback to simple key"""
        if self.stripe_use_live_mode:
            if self._is_valid_stripe_key(self.stripe_live_secret_key):
                return self.stripe_live_secret_key
            return self.stripe_secret_key
        if self._is_valid_stripe_key(self.stripe_test_secret_key):
            return self.stripe_test_secret_key
        return self.stripe_secret_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
