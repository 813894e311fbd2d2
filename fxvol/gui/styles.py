"""Look of the volatility import console."""

COLORS = {
    'window': '#12161f',
    'panel': '#1a202c',
    'grid': '#2d3748',
    'text': '#e2e8f0',
    'muted': '#718096',
    'accent': '#38bdf8',
    'button': '#2b6cb0',
    'positive': '#48bb78',
    'negative': '#f56565',
    'warning': '#ecc94b',
}

MAIN_STYLESHEET = f"""
QWidget {{
    background-color: {COLORS['window']};
    color: {COLORS['text']};
    font-size: 12px;
}}

QLabel#header {{
    font-size: 17px;
    font-weight: bold;
    color: {COLORS['accent']};
}}

QLabel#sectionHeader {{
    font-weight: bold;
    color: {COLORS['muted']};
}}

QPushButton {{
    background-color: {COLORS['button']};
    border-radius: 3px;
    padding: 6px 14px;
}}

QPushButton#loadButton, QPushButton#exportButton {{
    color: {COLORS['window']};
    font-weight: bold;
}}

QPushButton#loadButton {{ background-color: {COLORS['accent']}; }}
QPushButton#exportButton {{ background-color: {COLORS['positive']}; }}

QPushButton:disabled {{
    background-color: {COLORS['grid']};
    color: {COLORS['muted']};
}}

QTableWidget {{
    background-color: {COLORS['panel']};
    alternate-background-color: {COLORS['window']};
    gridline-color: {COLORS['grid']};
}}

QHeaderView::section {{
    background-color: {COLORS['grid']};
    color: {COLORS['accent']};
    padding: 4px;
    border: none;
}}

QStatusBar {{
    color: {COLORS['muted']};
}}
"""


def get_rr_color(value: float) -> str:
    """Green for call skew, red for put skew."""
    if value > 0:
        return COLORS['positive']
    if value < 0:
        return COLORS['negative']
    return COLORS['text']


def format_vol(value: float) -> str:
    return f"{value:.3f}"
