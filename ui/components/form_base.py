import customtkinter as ctk
from utils.currency import parse_amount


class FormDialog(ctk.CTkToplevel):
    """Modal form window. Subclasses build rows and set self.saved on success."""

    def __init__(self, master, title: str, **kwargs):
        super().__init__(master, **kwargs)
        self.saved = False
        self.title(title)
        self.resizable(False, False)
        self.grid_columnconfigure(1, weight=1)
        self._error_var = ctk.StringVar()

    def _open(self, focus=None):
        self.transient(self.master)
        self.grab_set()
        self._center()
        if focus is not None:
            focus.focus_set()

    def _label(self, text, row):
        ctk.CTkLabel(self, text=text).grid(
            row=row, column=0, padx=(16, 8), pady=4, sticky="e"
        )

    def _place(self, widget, row, sticky="ew"):
        widget.grid(row=row, column=1, padx=(0, 16), pady=4, sticky=sticky)
        return widget

    def _entry(self, row, label, value="", width=240):
        self._label(label, row)
        var = ctk.StringVar(value=value)
        self._place(ctk.CTkEntry(self, textvariable=var, width=width), row)
        return var

    def _combo(self, row, label, values, value="", command=None, width=240):
        self._label(label, row)
        var = ctk.StringVar(value=value)
        combo = ctk.CTkComboBox(
            self, values=values, variable=var, width=width,
            state="readonly", command=command,
        )
        self._place(combo, row)
        return var, combo

    def _build_footer(self, r, save_text="Guardar", on_delete=None):
        ctk.CTkLabel(
            self, textvariable=self._error_var,
            text_color="#F44336", wraplength=320, anchor="w"
        ).grid(row=r, column=0, columnspan=2, padx=16, pady=(0, 4), sticky="ew")
        r += 1

        btn_frame = ctk.CTkFrame(self, fg_color="transparent")
        btn_frame.grid(row=r, column=0, columnspan=2, padx=16, pady=(4, 16), sticky="ew")
        ctk.CTkButton(
            btn_frame, text="Cancelar", width=90,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=self.destroy,
        ).pack(side="left")
        if on_delete:
            ctk.CTkButton(
                btn_frame, text="Eliminar", width=90,
                fg_color="#F44336", hover_color="#D32F2F",
                command=on_delete,
            ).pack(side="left", padx=8)
        ctk.CTkButton(
            btn_frame, text=save_text, width=110,
            command=self._on_save,
        ).pack(side="right")

    def _on_save(self):
        raise NotImplementedError

    def _done(self):
        self.saved = True
        self.destroy()

    def _center(self):
        self.update_idletasks()
        mw = self.master.winfo_x() + self.master.winfo_width() // 2
        mh = self.master.winfo_y() + self.master.winfo_height() // 2
        w, h = self.winfo_reqwidth(), self.winfo_reqheight()
        self.geometry(f"+{mw - w//2}+{mh - h//2}")


def parse_optional_amount(text: str) -> float | None:
    """Blank input means no amount."""
    if not (text or "").strip():
        return None
    return parse_amount(text)
