import logging
import customtkinter as ctk
from tkinter import filedialog

from ui.app_context import AppContext
from utils.app_config import LOG_LEVELS, get_db_folder, get_log_level, set_db_folder, set_log_level
from utils.constants import CURRENCIES, DEFAULT_DISPLAY_CURRENCY
from utils.date_helpers import DATE_FORMAT_OPTIONS

_APPEARANCE = {"Sistema": "system", "Claro": "light", "Oscuro": "dark"}


class SettingsTab(ctk.CTkFrame):
    """Settings tab: DB folder and app preferences."""

    def __init__(self, master, ctx: AppContext, on_settings_changed=None, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._db = ctx.services.db
        self._on_settings_changed = on_settings_changed

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=1)

        scroll = ctk.CTkScrollableFrame(self, fg_color="transparent")
        scroll.grid(row=0, column=0, sticky="nsew")
        scroll.grid_columnconfigure(0, weight=1)

        self._build_db_folder_section(scroll)
        self._build_app_settings_section(scroll)

    def refresh(self):
        """Re-read settings from DB and update displayed values."""
        appearance = self._db.get_setting("appearance_mode", "system")
        self._appearance_var.set(next((k for k, v in _APPEARANCE.items() if v == appearance), "Sistema"))
        self._currency_var.set(self._db.get_setting("display_currency", DEFAULT_DISPLAY_CURRENCY))
        date_fmt = self._db.get_setting("date_format", "DD-MM-YYYY")
        if date_fmt in DATE_FORMAT_OPTIONS:
            self._date_fmt_var.set(date_fmt)

    # ── DB folder ─────────────────────────────────────────────────────────────

    def _build_db_folder_section(self, parent):
        section = self._make_section(parent, "Carpeta de datos", row=0)

        ctk.CTkLabel(
            section,
            text="La base de datos (cashe.db) se guarda en esta carpeta.",
            text_color="gray60",
            font=ctk.CTkFont(size=11),
            anchor="w",
        ).grid(row=0, column=0, columnspan=3, sticky="w", padx=8, pady=(4, 6))

        self._db_folder_var = ctk.StringVar(value=get_db_folder() or "(por defecto: ~/.cashe)")
        ctk.CTkEntry(
            section, textvariable=self._db_folder_var,
            state="readonly", width=340,
        ).grid(row=1, column=0, padx=(8, 4), pady=4, sticky="ew")
        section.grid_columnconfigure(0, weight=1)

        ctk.CTkButton(section, text="Elegir…", width=90,
                      command=self._browse_db_folder).grid(row=1, column=1, padx=4)
        ctk.CTkButton(
            section, text="Restablecer", width=120,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=self._reset_db_folder,
        ).grid(row=1, column=2, padx=(4, 8))

        self._db_restart_label = ctk.CTkLabel(
            section, text="", text_color="#FF9800",
            font=ctk.CTkFont(size=11), anchor="w",
        )
        self._db_restart_label.grid(row=2, column=0, columnspan=3, sticky="w", padx=8, pady=(0, 6))

        ctk.CTkLabel(section, text="Nivel de log:", anchor="w").grid(
            row=3, column=0, sticky="w", padx=8, pady=(0, 8)
        )
        self._log_level_var = ctk.StringVar(value=get_log_level())
        ctk.CTkComboBox(section, values=list(LOG_LEVELS), variable=self._log_level_var, width=120,
                        state="readonly", command=self._change_log_level).grid(
            row=3, column=1, columnspan=2, sticky="w", padx=4, pady=(0, 8)
        )

    def _browse_db_folder(self):
        path = filedialog.askdirectory(title="Elegir carpeta de datos")
        if path:
            set_db_folder(path)
            self._db_folder_var.set(path)
            self._db_restart_label.configure(text="Reiniciá la app para aplicar el cambio.")

    def _change_log_level(self, level: str):
        set_log_level(level)
        logging.getLogger().setLevel(level)

    def _reset_db_folder(self):
        set_db_folder(None)
        self._db_folder_var.set("(por defecto: ~/.cashe)")
        self._db_restart_label.configure(text="Reiniciá la app para aplicar el cambio.")

    # ── Preferences ───────────────────────────────────────────────────────────

    def _build_app_settings_section(self, parent):
        section = self._make_section(parent, "Preferencias", row=1)

        self._appearance_var = ctk.StringVar()
        self._currency_var = ctk.StringVar()
        self._date_fmt_var = ctk.StringVar(value="DD-MM-YYYY")
        for r, (label, values, var) in enumerate((
            ("Apariencia:", list(_APPEARANCE), self._appearance_var),
            ("Moneda de visualización:", CURRENCIES, self._currency_var),
            ("Formato de fecha:", DATE_FORMAT_OPTIONS, self._date_fmt_var),
        )):
            ctk.CTkLabel(section, text=label, anchor="e", width=170).grid(
                row=r, column=0, padx=(8, 4), pady=6, sticky="e"
            )
            ctk.CTkComboBox(section, values=values, variable=var, width=180,
                            state="readonly").grid(row=r, column=1, padx=4, pady=6, sticky="w")
        self.refresh()

        ctk.CTkButton(section, text="Guardar", width=140,
                      command=self._save_settings).grid(row=3, column=0, columnspan=2, pady=(10, 8))

        self._settings_status_var = ctk.StringVar()
        ctk.CTkLabel(
            section, textvariable=self._settings_status_var,
            text_color="#4CAF50", font=ctk.CTkFont(size=11),
        ).grid(row=4, column=0, columnspan=2, pady=(0, 8))

    def _save_settings(self):
        appearance_key = _APPEARANCE[self._appearance_var.get()]
        currency = self._currency_var.get()
        date_fmt = self._date_fmt_var.get()

        self._db.set_setting("appearance_mode", appearance_key)
        self._db.set_setting("display_currency", currency)
        self._db.set_setting("date_format", date_fmt)
        ctk.set_appearance_mode(appearance_key)
        date_changed = date_fmt != self._ctx.date_format
        self._ctx.display_currency = currency
        self._ctx.date_format = date_fmt
        self._settings_status_var.set(
            "Preferencias guardadas. El formato de fecha se aplica por completo al reiniciar."
            if date_changed else "Preferencias guardadas."
        )
        if self._on_settings_changed:
            self._on_settings_changed()

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _make_section(self, parent, title: str, row: int) -> ctk.CTkFrame:
        """Create a labelled card section and return its inner frame."""
        outer = ctk.CTkFrame(parent, corner_radius=8)
        outer.grid(row=row, column=0, sticky="ew", padx=12, pady=8)
        outer.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(
            outer, text=title,
            font=ctk.CTkFont(size=14, weight="bold"), anchor="w",
        ).grid(row=0, column=0, sticky="w", padx=12, pady=(10, 4))

        inner = ctk.CTkFrame(outer, fg_color="transparent")
        inner.grid(row=1, column=0, sticky="ew", padx=4, pady=(0, 8))
        inner.grid_columnconfigure(0, weight=1)
        return inner
