import customtkinter as ctk

_MAX_DETAIL_LINES = 6


class ConfirmDialog(ctk.CTkToplevel):
    """Modal yes/no question; read `.result` after construction returns.

    `details` lists what the action touches (installments, selected rows);
    only the first few lines are shown.
    """

    def __init__(self, master, title: str, message: str, details: list[str] | None = None,
                 confirm_text: str = "Eliminar", danger: bool = True, **kwargs):
        super().__init__(master, **kwargs)
        self.title(title)
        self.result = False
        self.resizable(False, False)
        self.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(self, text=message, wraplength=380, justify="left",
                     font=ctk.CTkFont(weight="bold")).grid(row=0, column=0, padx=20, pady=(18, 8), sticky="w")

        row = 1
        if details:
            lines = [f"• {d}" for d in details[:_MAX_DETAIL_LINES]]
            if len(details) > _MAX_DETAIL_LINES:
                lines.append(f"… y {len(details) - _MAX_DETAIL_LINES} más")
            box = ctk.CTkFrame(self, fg_color=("gray90", "gray20"), corner_radius=6)
            box.grid(row=row, column=0, padx=20, pady=(0, 10), sticky="ew")
            ctk.CTkLabel(box, text="\n".join(lines), justify="left", anchor="w",
                         text_color=("gray30", "gray70")).pack(fill="x", padx=10, pady=8)
            row += 1

        buttons = ctk.CTkFrame(self, fg_color="transparent")
        buttons.grid(row=row, column=0, padx=20, pady=(4, 16), sticky="e")
        ctk.CTkButton(buttons, text="Cancelar", width=90, fg_color="transparent", border_width=1,
                      text_color=("gray10", "gray90"),
                      command=lambda: self._close(False)).pack(side="left", padx=(0, 8))
        accent = {"fg_color": "#F44336", "hover_color": "#D32F2F"} if danger else {}
        ctk.CTkButton(buttons, text=confirm_text, width=100,
                      command=lambda: self._close(True), **accent).pack(side="left")

        self.bind("<Return>", lambda _e: self._close(True))
        self.bind("<Escape>", lambda _e: self._close(False))
        self.protocol("WM_DELETE_WINDOW", lambda: self._close(False))

        self.transient(master)
        self.grab_set()
        self._place_over(master)
        self.focus_set()
        self.wait_window()

    def _place_over(self, master):
        self.update_idletasks()
        x = master.winfo_rootx() + (master.winfo_width() - self.winfo_width()) // 2
        y = master.winfo_rooty() + (master.winfo_height() - self.winfo_height()) // 3
        self.geometry(f"+{max(x, 0)}+{max(y, 0)}")

    def _close(self, answer: bool):
        self.result = answer
        self.destroy()
