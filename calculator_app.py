#!/usr/bin/env python3
"""
Keypad Calculator (Tkinter front end)

- Result/expression display • memory indicator • last-N history
- Unit converter row (data, length, weight)
- Keyboard: digits . + - * / Enter Backspace Esc
- Errors flash in the result field and revert after a short delay
"""

from __future__ import annotations

import logging
import tkinter as tk
from dataclasses import dataclass
from logging.config import dictConfig
from tkinter import messagebox
from tkinter import font as tkfont
from typing import Callable, List, Optional

from calculator import (
    UNIT_KINDS,
    Action,
    CalculationError,
    CalculatorEngine,
    Settings,
    action_for_tag,
    command_for_key,
    dispatch,
)

log = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"}},
        "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain", "level": level}},
        "loggers": {"": {"handlers": ["console"], "level": level}},
    })

# ============================ Small UI helpers ==============================

def _hex_to_rgb(h: str) -> tuple[int,int,int]:
    h = h.lstrip("#"); return tuple(int(h[i:i+2],16) for i in (0,2,4))
def _rgb_to_hex(r:int,g:int,b:int) -> str: return f"#{r:02x}{g:02x}{b:02x}"
def _mix(c1:str,c2:str,t:float)->str:
    r1,g1,b1=_hex_to_rgb(c1); r2,g2,b2=_hex_to_rgb(c2)
    return _rgb_to_hex(round(r1+(r2-r1)*t), round(g1+(g2-g1)*t), round(b1+(b2-b1)*t))

# Tk event.state bits: Control is 0x4 everywhere; Mod1 (0x8) is Command on aqua
# but Alt on X11, where Meta/Super arrive as Mod4 (0x40).
CONTROL_MASK = 0x4
def key_modifiers(state: int, windowing_system: str) -> tuple[bool,bool]:
    meta_mask = 0x8 if windowing_system == "aqua" else 0x40
    return bool(state & CONTROL_MASK), bool(state & meta_mask)

@dataclass
class Palette:
    name:str; bg:str; panel:str; fg:str; subtle:str; btn_bg:str; btn_active:str; accent:str; error:str

LIGHT = Palette("light","#F6F7FB","#FFFFFF","#1F2937","#6B7280","#EEF1F7","#E5E7EB","#4F46E5","#DC2626")
DARK  = Palette("dark" ,"#0F172A","#111827","#E5E7EB","#9CA3AF","#1F2937","#334155","#60A5FA","#F87171")

# =============================== Keypad ====================================

# (label, tag) rows; tags are digits/"." or action names understood by action_for_tag
KEYPAD: List[List[tuple]] = [
    [("MC","mc"), ("MR","mr"), ("MS","ms"), ("M+","m-plus"), ("M−","m-minus")],
    [("C","clear"), ("←","backspace"), ("±","toggle-sign"), ("√","sqrt"), ("÷","divide")],
    [("7","7"), ("8","8"), ("9","9"), ("×","multiply"), ("−","subtract")],
    [("4","4"), ("5","5"), ("6","6"), ("+","add"), ("=","calculate")],
    [("1","1"), ("2","2"), ("3","3"), ("0","0"), (".",".")],
]

class CalculatorApp(tk.Tk):
    def __init__(self, settings: Optional[Settings] = None) -> None:
        super().__init__()
        self.title("Calculator"); self.minsize(360, 520)
        self.engine = CalculatorEngine(settings)
        self.palette: Palette = LIGHT
        self._error_job: Optional[str] = None
        self._windowing: str = self.tk.call("tk", "windowingsystem")

        self._init_fonts(); self._build_ui(); self._apply_palette(); self._render()
        self.bind("<Key>", self._on_key)

    def _init_fonts(self)->None:
        def choose(*names:str)->str:
            avail=set(tkfont.families())
            for n in names:
                if n in avail: return n
            return "Segoe UI"
        self.fonts={"ui":tkfont.Font(family=choose("Segoe UI","Arial"), size=11),
                    "ui_bold":tkfont.Font(family=choose("Segoe UI Semibold","Segoe UI","Arial"), size=11, weight="bold"),
                    "mono":tkfont.Font(family=choose("Consolas","Courier New"), size=22),
                    "small":tkfont.Font(family=choose("Consolas","Courier New"), size=10)}

    # UI
    def _build_ui(self)->None:
        self.root_frame=tk.Frame(self,bd=0); self.root_frame.pack(fill="both",expand=True,padx=12,pady=12)

        self.topbar=tk.Frame(self.root_frame); self.topbar.pack(fill="x")
        self.memory_label=tk.Label(self.topbar,text="",width=2,font=self.fonts["ui_bold"],anchor="w"); self.memory_label.pack(side="left")
        self.theme_btn=tk.Button(self.topbar,text="🌙",width=3,relief="flat",command=self.toggle_theme); self.theme_btn.pack(side="right")

        self.display_panel=tk.Frame(self.root_frame,bd=0); self.display_panel.pack(fill="x",pady=(6,6))
        self.history_var=tk.StringVar()
        self.history_label=tk.Label(self.display_panel,textvariable=self.history_var,anchor="e",justify="right",font=self.fonts["small"])
        self.history_label.pack(fill="x",padx=8,pady=(6,0))
        self.expression_var=tk.StringVar()
        self.expression_label=tk.Label(self.display_panel,textvariable=self.expression_var,anchor="e",font=self.fonts["ui"])
        self.expression_label.pack(fill="x",padx=8)
        self.result_var=tk.StringVar()
        self.result_label=tk.Label(self.display_panel,textvariable=self.result_var,anchor="e",font=self.fonts["mono"])
        self.result_label.pack(fill="x",padx=8,pady=(0,8))

        self.units_bar=tk.Frame(self.root_frame); self.units_bar.pack(fill="x",pady=(0,6))
        self.kind_var=tk.StringVar(value="none"); self.from_var=tk.StringVar(value="base"); self.to_var=tk.StringVar(value="base")
        self.kind_menu=tk.OptionMenu(self.units_bar,self.kind_var,"none",*UNIT_KINDS,command=self._on_kind)
        self.from_menu=tk.OptionMenu(self.units_bar,self.from_var,"base")
        self.to_menu=tk.OptionMenu(self.units_bar,self.to_var,"base")
        for m in (self.kind_menu,self.from_menu,self.to_menu):
            m.config(width=6,font=self.fonts["ui"],relief="flat"); m.pack(side="left",padx=(0,6))
        self.arrow_label=tk.Label(self.units_bar,text="→",font=self.fonts["ui"])
        self.arrow_label.pack(side="left",after=self.from_menu,padx=(0,6))

        self.grid_frame=tk.Frame(self.root_frame); self.grid_frame.pack(fill="both",expand=True)
        for c in range(5): self.grid_frame.grid_columnconfigure(c, weight=1)
        for r in range(len(KEYPAD)): self.grid_frame.grid_rowconfigure(r, weight=1)

        self.buttons: List[tk.Button] = []
        for r,row in enumerate(KEYPAD):
            for c,(label,tag) in enumerate(row):
                b=tk.Button(self.grid_frame,text=label,relief="flat",bd=0,
                            font=self.fonts["ui_bold"] if tag=="calculate" else self.fonts["ui"],
                            command=self._command_for_tag(tag))
                b.grid(row=r,column=c,sticky="nsew",padx=3,pady=3,ipady=8)
                if tag=="calculate": b._accent=True  # type: ignore[attr-defined]
                self.buttons.append(b)

    def _command_for_tag(self, tag: str) -> Callable[[], None]:
        if tag.isdigit() or tag==".": return lambda: self.press_digit(tag)
        action=action_for_tag(tag)
        return lambda: self.perform(action)

    # Theming
    def _style_button(self,b:tk.Button)->None:
        p=self.palette
        if getattr(b,"_accent",False):
            b.configure(bg=p.accent,fg="white",activebackground=p.accent,activeforeground="white")
            hov=_mix(p.accent,"#ffffff",0.08); b.bind("<Enter>",lambda _e:b.configure(bg=hov)); b.bind("<Leave>",lambda _e:b.configure(bg=p.accent))
        else:
            b.configure(bg=p.btn_bg,fg=p.fg,activebackground=p.btn_active,activeforeground=p.fg)
            hov=_mix(p.btn_bg,p.btn_active,0.6); b.bind("<Enter>",lambda _e:b.configure(bg=hov)); b.bind("<Leave>",lambda _e:b.configure(bg=p.btn_bg))

    def _apply_palette(self)->None:
        p=self.palette
        self.configure(bg=p.bg)
        for w in (self.root_frame,self.topbar,self.units_bar,self.grid_frame): w.configure(bg=p.bg)
        self.display_panel.configure(bg=p.panel)
        self.memory_label.configure(bg=p.bg,fg=p.accent)
        self.arrow_label.configure(bg=p.bg,fg=p.fg)
        self.theme_btn.configure(bg=p.panel,fg=p.fg,activebackground=p.btn_active,activeforeground=p.fg)
        self.history_label.configure(bg=p.panel,fg=p.subtle)
        self.expression_label.configure(bg=p.panel,fg=p.subtle)
        self.result_label.configure(bg=p.panel,fg=p.fg)
        for m in (self.kind_menu,self.from_menu,self.to_menu):
            m.configure(bg=p.panel,fg=p.fg,activebackground=p.btn_active,highlightthickness=0)
        for b in self.buttons: self._style_button(b)

    def toggle_theme(self)->None:
        self.palette = DARK if self.palette is LIGHT else LIGHT
        self.theme_btn.configure(text=("🌙" if self.palette is LIGHT else "☀️"))
        self._apply_palette()

    # ----------------------------- Actions ---------------------------------
    def press_digit(self, token: str) -> None:
        self.engine.append_digit(token); self._render()

    def perform(self, action: Action) -> None:
        try:
            dispatch(self.engine, action)
        except CalculationError as exc:
            self._show_error(str(exc)); return
        self._render()

    def _on_key(self, event: tk.Event):
        ctrl,meta=key_modifiers(event.state, self._windowing)
        key=event.char if event.char and event.char in "0123456789.+-*/" else event.keysym
        cmd=command_for_key(key, ctrl=ctrl, meta=meta)
        if cmd is None: return
        if isinstance(cmd, Action): self.perform(cmd)
        else: self.press_digit(cmd)
        return "break"

    # Units
    def _set_options(self, menu: tk.OptionMenu, var: tk.StringVar, values: List[str],
                     on_pick: Callable[[str], None]) -> None:
        m=menu["menu"]; m.delete(0,"end")
        for v in values: m.add_command(label=v, command=lambda v=v: (var.set(v), on_pick(v)))
        var.set(values[0])

    def _on_kind(self, kind: str) -> None:
        self.engine.set_unit_kind(kind)
        units=list(UNIT_KINDS[kind].units) if kind in UNIT_KINDS else ["base"]
        self._set_options(self.from_menu,self.from_var,units,self._on_from)
        self._set_options(self.to_menu,self.to_var,units,self._on_to)
        self._render()

    def _on_from(self, unit: str) -> None:
        if unit=="base": return
        self.engine.set_unit_from(unit); self._render()

    def _on_to(self, unit: str) -> None:
        if unit=="base": return
        self.engine.set_unit_to(unit); self._render()

    # ----------------------------- Rendering -------------------------------
    def _render(self) -> None:
        e=self.engine
        self.result_var.set(e.display)
        self.result_label.configure(fg=self.palette.fg)
        self.expression_var.set(e.expression)
        self.history_var.set("\n".join(e.recent_history()))
        self.memory_label.configure(text=e.memory_indicator)

    def _show_error(self, message: str) -> None:
        log.warning("%s", message)
        self.bell()
        self.result_var.set(message); self.result_label.configure(fg=self.palette.error)
        if self._error_job is not None: self.after_cancel(self._error_job)
        self._error_job=self.after(self.engine.settings.error_delay_ms, self._end_error)

    def _end_error(self) -> None:
        self._error_job=None; self._render()

# ============================= Entrypoint ===================================

def main()->int:
    setup_logging()
    try:
        app=CalculatorApp(); app.mainloop(); return 0
    except Exception as exc:
        log.exception("fatal error")
        messagebox.showerror("Fatal Error", str(exc)); return 1

if __name__=="__main__":
    raise SystemExit(main())
