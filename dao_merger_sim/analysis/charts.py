#!/usr/bin/env python3
"""
Merger Visualization

Price history and batch price-impact charts for a merger configuration,
written as PNG files into a caller-supplied directory.
"""

import logging
from pathlib import Path
from typing import List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

from ..core.data import PriceSeries
from ..core.statistics import StatisticsEngine
from .price_impact import PriceImpactReport


logger = logging.getLogger(__name__)


class MergerChartGenerator:
    """Generates the merger analysis charts"""

    def __init__(self, dpi: int = 150):
        self.dpi = dpi
        self._setup_styling()

    def _setup_styling(self):
        plt.style.use('default')
        sns.set_palette("husl")

        plt.rcParams.update({
            'figure.figsize': (12, 8),
            'font.size': 11,
            'axes.titlesize': 14,
            'axes.labelsize': 12,
            'legend.fontsize': 10,
            'xtick.labelsize': 10,
            'ytick.labelsize': 10
        })

    def generate_merger_charts(self, series_a: PriceSeries, series_b: PriceSeries,
                               price_impact: Optional[PriceImpactReport], charts_dir: Path) -> List[Path]:
        """Write every chart that has data and return their paths"""
        charts_dir = Path(charts_dir)
        charts_dir.mkdir(parents=True, exist_ok=True)

        generated = [self.price_history_chart(series_a, series_b, charts_dir)]
        if price_impact is not None and price_impact.impacts:
            generated.append(self.price_impact_chart(price_impact, charts_dir))

        logger.info("Generated %d merger charts in %s", len(generated), charts_dir)
        return generated

    def price_history_chart(self, series_a: PriceSeries, series_b: PriceSeries, charts_dir: Path) -> Path:
        """Both price histories, each normalised to its first valid price, with volatility in the legend"""
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 9), sharex=True)

        for series, color in ((series_a, '#2E86AB'), (series_b, '#FF6B35')):
            frame = series.to_frame()
            vol = StatisticsEngine.volatility(series)
            label = f"{series.symbol} (vol {vol * 100:.1f}%)"
            ax1.plot(frame.index, frame["price"], color=color, linewidth=2, label=label)

            valid = frame["price"].dropna()
            if not valid.empty:
                ax2.plot(valid.index, valid / valid.iloc[0] * 100, color=color, linewidth=2, label=series.symbol)

        ax1.set_ylabel("Price ($)")
        ax1.set_title("Price History")
        ax1.legend()
        ax1.grid(True, alpha=0.3)

        ax2.axhline(y=100, color='black', linestyle='--', alpha=0.5)
        ax2.set_xlabel("Date")
        ax2.set_ylabel("Indexed Price (start = 100)")
        ax2.set_title("Relative Performance")
        ax2.legend()
        ax2.grid(True, alpha=0.3)

        plt.tight_layout()
        chart_path = Path(charts_dir) / f"price_history_{series_a.symbol}_{series_b.symbol}.png"
        fig.savefig(chart_path, dpi=self.dpi, bbox_inches='tight')
        plt.close(fig)
        return chart_path

    def price_impact_chart(self, report: PriceImpactReport, charts_dir: Path) -> Path:
        """Per-batch impact bars with the cumulative impact line"""
        batches = [b.batch for b in report.impacts]
        per_batch = [b.price_impact_pct for b in report.impacts]
        cumulative = [b.cumulative_impact_pct for b in report.impacts]

        fig, ax1 = plt.subplots(figsize=(12, 6))
        ax1.bar(batches, per_batch, color='#2E86AB', alpha=0.7, label='Batch Impact')
        ax1.set_xlabel("Batch")
        ax1.set_ylabel("Batch Price Impact (%)")

        ax2 = ax1.twinx()
        ax2.plot(batches, cumulative, color='#C73E1D', linewidth=2, marker='o', label='Cumulative Impact')
        ax2.set_ylabel("Cumulative Impact (%)")

        ax1.set_title(f"Batch Price Impact (total {report.total_price_impact:.2f}%)")
        ax1.grid(True, alpha=0.3)
        handles1, labels1 = ax1.get_legend_handles_labels()
        handles2, labels2 = ax2.get_legend_handles_labels()
        ax1.legend(handles1 + handles2, labels1 + labels2, loc='upper left')

        plt.tight_layout()
        chart_path = Path(charts_dir) / "batch_price_impact.png"
        fig.savefig(chart_path, dpi=self.dpi, bbox_inches='tight')
        plt.close(fig)
        return chart_path
