import customtkinter as ctk
from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg


class ChartPanel(ctk.CTkFrame):
    """Titled card holding one matplotlib axes that follows the appearance mode."""

    def __init__(self, master, title: str, figsize=(5, 3), **kwargs):
        super().__init__(master, fg_color=("gray90", "gray20"), corner_radius=8, **kwargs)
        ctk.CTkLabel(self, text=title, font=ctk.CTkFont(size=13, weight="bold")).pack(pady=(10, 0))
        self.fig = Figure(figsize=figsize, dpi=80, tight_layout=True)
        self.ax = self.fig.add_subplot(111)
        self._canvas = FigureCanvasTkAgg(self.fig, master=self)
        self._canvas.get_tk_widget().pack(fill="both", expand=True, padx=8, pady=(4, 10))

    def clear(self):
        ax = self.ax
        ax.clear()
        is_dark = ctk.get_appearance_mode() == "Dark"
        bg = "#2b2b2b" if is_dark else "#e4e4e4"
        fg = "#aaaaaa" if is_dark else "#444444"
        self.fig.patch.set_facecolor(bg)
        ax.set_facecolor(bg)
        ax.tick_params(colors=fg, labelsize=8)
        for spine in ax.spines.values():
            spine.set_edgecolor(fg)
        return ax

    def show_empty(self, text: str = "Sin datos"):
        self.clear().text(0.5, 0.5, text, ha="center", va="center",
                          transform=self.ax.transAxes, color="gray")
        self.draw()

    def draw(self):
        self._canvas.draw_idle()


def short_amount(v, _pos=None) -> str:
    return f"{v/1000:.0f}k" if abs(v) >= 1000 else f"{v:.0f}"
