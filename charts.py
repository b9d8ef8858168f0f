"""
Plotly chart builders for the spending projection and legacy outcomes.
"""
import plotly.graph_objects as go
import numpy as np
from typing import Dict, List, Optional

from percentiles import calculate_percentiles


def _dollar_hover(name: str) -> str:
    return f"<b>{name}</b><br><b>%{{x}}</b><br>$%{{y:,.0f}}<extra></extra>"


def create_spending_chart(bands: Dict[str, np.ndarray],
                          labels: Dict[str, str],
                          x_labels: List[str]) -> go.Figure:
    """
    Spending percentiles per year.

    Args:
        bands: Output of display.build_spending_bands
        labels: Output of display.chart_labels
        x_labels: One label per year (e.g. "Age 65")

    Returns:
        Plotly figure: stacked sources with a total median line when the
        bands are split by source, otherwise a 5th-95th range with a median line
    """
    kind = labels['dollar_type']
    fig = go.Figure()

    if 'lmp' in bands:
        risk_p5 = np.maximum(0, bands['risk_p5'])
        risk_mid = np.maximum(0, bands['risk_p50'] - bands['risk_p5'])
        risk_high = np.maximum(0, bands['risk_p95'] - bands['risk_p50'])
        stacked = [
            (f"LMP Guaranteed ({kind})", bands['lmp'], 'rgba(75, 192, 192, 0.7)'),
            (f"Risk Portfolio (5th Perc. {kind})", risk_p5, 'rgba(255, 99, 132, 0.5)'),
            (f"Risk Portfolio (Median - 5th Perc. {kind})", risk_mid, 'rgba(255, 159, 64, 0.6)'),
            (f"Risk Portfolio (95th - Median Perc. {kind})", risk_high, 'rgba(255, 205, 86, 0.6)'),
        ]
        for name, values, color in stacked:
            fig.add_trace(go.Bar(
                x=x_labels, y=values, name=name,
                marker=dict(color=color),
                hovertemplate=_dollar_hover(name)
            ))
        median_name = f"Total Median Spending ({kind})"
        fig.add_trace(go.Scatter(
            x=x_labels, y=bands['total_median'],
            mode='lines', name=median_name,
            line=dict(color='#3e6482', width=2.5),
            hovertemplate=_dollar_hover(median_name)
        ))
        fig.update_layout(barmode='stack')
    else:
        low = bands['total_p5']
        high = bands['total_p95']
        range_name = f"5th-95th Percentile Spending ({kind})"
        # Floating bars: base at the 5th percentile, height up to the 95th
        fig.add_trace(go.Bar(
            x=x_labels, y=high - low, base=low, name=range_name,
            marker=dict(color='rgba(121, 165, 197, 0.3)',
                        line=dict(color='rgba(121, 165, 197, 0.5)', width=1)),
            customdata=np.column_stack([low, high]),
            hovertemplate=(f"<b>{range_name}</b><br><b>%{{x}}</b><br>"
                           "$%{customdata[0]:,.0f} - $%{customdata[1]:,.0f}<extra></extra>")
        ))
        median_name = f"Median Spending ({kind})"
        fig.add_trace(go.Scatter(
            x=x_labels, y=bands['total_p50'],
            mode='lines', name=median_name,
            line=dict(color='#3e6482', width=2.5),
            hovertemplate=_dollar_hover(median_name)
        ))

    fig.update_layout(
        title=f"{labels['title']}<br><sub>{labels['subtitle']}</sub>",
        xaxis_title=x_labels[0].split()[0] if x_labels else "Year",
        yaxis_title=f"Spending ({kind} $)",
        template="plotly_white",
        hovermode="x unified",
        legend=dict(x=0.02, y=0.98),
        margin=dict(t=100, b=50, l=50, r=50)
    )
    return fig


def create_legacy_distribution(legacy_values: np.ndarray,
                               title: str = "Legacy Distribution",
                               currency_format: str = "real",
                               n_bins: Optional[int] = None) -> go.Figure:
    """
    Histogram of terminal balances with 5th/50th/95th percentile markers.

    Args:
        legacy_values: Terminal balances already in display dollars
        title: Chart title
        currency_format: "real" or "nominal" for labels
        n_bins: Histogram bins (defaults to 2 * sqrt(n), between 20 and 100)
    """
    legacy_values = np.asarray(legacy_values, dtype=float)
    if n_bins is None:
        n_bins = min(100, max(20, int(np.sqrt(max(len(legacy_values), 1)) * 2)))

    fig = go.Figure()
    fig.add_trace(go.Histogram(
        x=legacy_values,
        nbinsx=n_bins,
        name="Legacy",
        marker=dict(color='lightblue', line=dict(color='darkblue', width=0.5), opacity=0.8),
        hovertemplate="<b>Legacy:</b> $%{x:,.0f}<br><b>Paths:</b> %{y}<extra></extra>"
    ))

    stats = calculate_percentiles(legacy_values)
    markers = [(0.05, "5th", 'red'), (0.5, "Median", 'green'), (0.95, "95th", 'purple')]
    for fraction, name, color in markers:
        fig.add_vline(
            x=stats[fraction], line_dash="dash", line_color=color,
            annotation_text=f"{name}: ${stats[fraction]:,.0f}", annotation_position="top"
        )

    currency_label = "Real" if currency_format == "real" else "Nominal"
    fig.update_layout(
        title=f"{title} ({currency_label} Dollars)",
        xaxis_title=f"Legacy ({currency_label} $)",
        yaxis_title="Number of Paths",
        template="plotly_white",
        showlegend=False,
        height=450
    )
    return fig
