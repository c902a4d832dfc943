import customtkinter as ctk


class MultiSelect(ctk.CTkScrollableFrame):
    """Checkbox list over (id, label) options."""

    def __init__(self, master, options: list[tuple[int, str]], selected=None,
                 height: int = 110, **kwargs):
        super().__init__(master, height=height, **kwargs)
        selected = set(selected or [])
        self._vars: dict[int, ctk.BooleanVar] = {}
        for idx, (option_id, label) in enumerate(options):
            var = ctk.BooleanVar(value=option_id in selected)
            self._vars[option_id] = var
            ctk.CTkCheckBox(self, text=label, variable=var).grid(
                row=idx, column=0, padx=4, pady=2, sticky="w"
            )

    def get(self) -> list[int]:
        return [option_id for option_id, var in self._vars.items() if var.get()]

    def set_enabled(self, enabled: bool):
        for child in self.winfo_children():
            child.configure(state="normal" if enabled else "disabled")
