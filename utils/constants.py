APP_NAME = "Cashé"
APP_WIDTH = 1280
APP_HEIGHT = 780
DB_FILE = "cashe.db"

DATE_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"
DEFAULT_DISPLAY_CURRENCY = "ARS"
UPCOMING_DAYS = 7
RECENT_USAGE_LIMIT = 50

CURRENCIES = ["ARS", "USD"]

ACCOUNT_TYPES = [
    "Caja de ahorro",
    "Cuenta corriente",
    "Efectivo",
    "Billetera virtual",
    "Inversiones",
    "Tarjeta de crédito",
]
CREDIT_CARD_TYPE = "Tarjeta de crédito"

DEFAULT_CATEGORIES = [
    {"name": "Sueldo",          "type": "income",  "icon": "💼"},
    {"name": "Freelance",       "type": "income",  "icon": "🧑‍💻"},
    {"name": "Otros ingresos",  "type": "income",  "icon": "💰"},
    {"name": "Supermercado",    "type": "expense", "icon": "🛒"},
    {"name": "Restaurantes",    "type": "expense", "icon": "🍽"},
    {"name": "Transporte",      "type": "expense", "icon": "🚌"},
    {"name": "Servicios",       "type": "expense", "icon": "💡"},
    {"name": "Alquiler",        "type": "expense", "icon": "🏠"},
    {"name": "Salud",           "type": "expense", "icon": "💊"},
    {"name": "Entretenimiento", "type": "expense", "icon": "🎬"},
    {"name": "Otros gastos",    "type": "expense", "icon": "📦"},
]
DEFAULT_ACCOUNT_NAME = "Efectivo"

TRANSACTION_TYPES = ["income", "expense", "transfer"]
TYPE_LABELS = {"income": "Ingreso", "expense": "Gasto", "transfer": "Transferencia"}
TYPE_COLORS = {"income": "#4CAF50", "expense": "#F44336", "transfer": "#2196F3"}

# Installments
INSTALLMENT_OPTIONS = [1, 3, 6, 12, 18, 24]
MIN_INSTALLMENTS = 1
MAX_INSTALLMENTS = 48
STATEMENT_PERIOD_OFFSETS = range(-1, 5)

# Recurring
FREQUENCY_TYPES = [
    "daily", "weekly", "biweekly", "monthly", "bimonthly",
    "quarterly", "biannual", "yearly", "custom_days",
]
FREQUENCY_LABELS = {
    "daily": "Diaria",
    "weekly": "Semanal",
    "biweekly": "Quincenal",
    "monthly": "Mensual",
    "bimonthly": "Bimestral",
    "quarterly": "Trimestral",
    "biannual": "Semestral",
    "yearly": "Anual",
    "custom_days": "Cada N días",
}
# Factor that turns one occurrence into a monthly equivalent.
FREQUENCY_MONTHLY_FACTOR = {
    "daily": 30,
    "weekly": 4,
    "biweekly": 2,
    "monthly": 1,
    "bimonthly": 1 / 2,
    "quarterly": 1 / 3,
    "biannual": 1 / 6,
    "yearly": 1 / 12,
}
MONTH_STEP = {"monthly": 1, "bimonthly": 2, "quarterly": 3, "biannual": 6, "yearly": 12}
DAY_STEP = {"daily": 1, "weekly": 7, "biweekly": 14}
WEEKEND_HANDLING = ["as_is", "previous_business_day", "next_business_day"]
CREATION_MODES = ["automatic", "manual_confirmation"]
DAYS_OF_WEEK = ["Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"]

# Budgets and goals
PERIOD_TYPES = ["weekly", "monthly", "yearly", "custom"]
GOAL_TYPES = ["savings", "income", "spending_reduction"]
GOAL_TYPE_LABELS = {
    "savings": "Ahorro",
    "income": "Ingresos",
    "spending_reduction": "Reducir gastos",
}
BUDGET_WARNING_PCT = 80

# Scheduled
SCHEDULED_STATUSES = ["pending", "executed", "rejected"]

# Auto-rules
RULE_LOGIC_OPERATORS = ["AND", "OR"]

# Static rates against USD; used for display conversion only.
EXCHANGE_RATES = {
    "USD": 1.0,
    "EUR": 0.85,
    "ARS": 980.0,
    "MXN": 17.5,
    "COP": 4100.0,
    "BRL": 5.2,
    "CLP": 850.0,
    "PEN": 3.7,
}

SEVERITY_COLORS = {
    "error":   "#F44336",
    "warning": "#FF9800",
    "info":    "#2196F3",
    "success": "#4CAF50",
}
