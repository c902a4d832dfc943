import logging
import os
import sys
import customtkinter as ctk

# Ensure project root is on sys.path when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from database.db_manager import DatabaseManager
from services.app_services import build_services
from services.data_stores import Stores
from ui.app_context import AppContext
from ui.app_window import AppWindow
from utils.app_config import get_db_folder, get_log_level
from utils.constants import DEFAULT_DISPLAY_CURRENCY
from utils.errors import ErrorReporter

logger = logging.getLogger(__name__)


def main():
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ── Database ─────────────────────────────────────────────────────────────
    db = DatabaseManager.open(get_db_folder())
    services = build_services(db)

    # ── Catch up: arrived future movements, due recurring rules ───────────────
    arrived = services.movements.process_arrived_future()
    generated = services.recurring.process_due()
    logger.info("Startup: %d future movements arrived, %d recurring occurrences", arrived, len(generated))

    # ── Preferences ──────────────────────────────────────────────────────────
    appearance = db.get_setting("appearance_mode", "system")
    ctk.set_appearance_mode(appearance)
    ctk.set_default_color_theme("blue")

    ctx = AppContext(
        services=services,
        stores=Stores(services),
        errors=ErrorReporter(),
        date_format=db.get_setting("date_format", "DD-MM-YYYY"),
        display_currency=db.get_setting("display_currency", DEFAULT_DISPLAY_CURRENCY),
    )

    # ── Launch UI ────────────────────────────────────────────────────────────
    app = AppWindow(ctx, startup_generated=len(generated), startup_arrived=arrived)

    def on_close():
        ctx.stores.close()
        services.events.clear()
        db.close()
        app.destroy()

    app.protocol("WM_DELETE_WINDOW", on_close)
    app.mainloop()


if __name__ == "__main__":
    main()
