from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def bus_mileage_chart(bus_mileage: List[Dict[str, Any]]) -> Optional[alt.Chart]:
    if not bus_mileage:
        return None
    return (
        alt.Chart(pd.DataFrame(bus_mileage))
        .mark_bar(cornerRadiusTopLeft=6, cornerRadiusTopRight=6, color="#0f766e")
        .encode(
            x=alt.X("bus_id:N", title="Bus", sort=None),
            y=alt.Y("mileage:Q", title="Mileage (km/l)", axis=alt.Axis(format=".1f", gridDash=[3, 3])),
            tooltip=["bus_id", alt.Tooltip("mileage:Q", title="km/l", format=".2f")],
        )
        .properties(height=260)
    )


def vendor_spend_chart(vendor_spend: List[Dict[str, Any]]) -> Optional[alt.Chart]:
    if not vendor_spend:
        return None
    return (
        alt.Chart(pd.DataFrame(vendor_spend))
        .mark_line(point=False, strokeWidth=2, color="#111827", interpolate="monotone")
        .encode(
            x=alt.X("vendor:N", title="Vendor", sort=None, axis=alt.Axis(labelAngle=-20)),
            y=alt.Y("amount:Q", title="Amount", axis=alt.Axis(format="~s", gridDash=[3, 3])),
            tooltip=["vendor", alt.Tooltip("amount:Q", format=",.0f")],
        )
        .properties(height=260)
    )
