"""Streamlit dashboard for LumenWatch.

Visualizes:
- Fleet stat tiles (total, normal, faulty, alerts)
- Street light locations, colored by status
- Maintenance alerts
- 24h LDR and current trends from stored history
- Status and current-draw breakdowns
- Live data table
"""

import threading

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from lumenwatch.config import load_settings
from lumenwatch.faults import FaultDeriver
from lumenwatch.ingestion import (
    SupabaseSource,
    TelemetryNormalizer,
    TelemetrySimulator,
    TelemetrySource,
)
from lumenwatch.metrics import current_distribution, map_center, status_breakdown
from lumenwatch.models import FleetSnapshot, LightStatus, MaintenanceAlert, Severity
from lumenwatch.refresh import RefreshLoop
from lumenwatch.storage import Storage

# Page config
st.set_page_config(
    page_title="LumenWatch Dashboard",
    page_icon="💡",
    layout="wide",
)

SETTINGS = load_settings()

STATUS_COLORS = {LightStatus.NORMAL.value: "#22c55e", LightStatus.FAULT.value: "#ef4444"}
SEVERITY_ICONS = {Severity.HIGH: "🔴", Severity.MEDIUM: "🟡", Severity.LOW: "🔵"}

# The refresh thread writes and the page reads through one DuckDB connection
_db_lock = threading.Lock()


@st.cache_resource
def get_storage() -> Storage:
    """Get cached database connection."""
    return Storage(SETTINGS.db_path)


@st.cache_resource
def get_refresh_loop() -> RefreshLoop:
    """Start the shared refresh loop once per server process."""
    source: TelemetrySource
    if SETTINGS.supabase_url:
        source = SupabaseSource(
            SETTINGS.supabase_url,
            api_key=SETTINGS.supabase_key,
            table=SETTINGS.table,
            timeout=SETTINGS.http_timeout,
        )
    else:
        source = TelemetrySimulator()

    loop = RefreshLoop(
        source,
        normalizer=TelemetryNormalizer(),
        deriver=FaultDeriver(),
        interval=SETTINGS.refresh_interval,
    )
    storage = get_storage()

    def persist(snapshot: FleetSnapshot) -> None:
        with _db_lock:
            storage.save_snapshot(snapshot)

    loop.subscribe(persist)
    loop.start()
    return loop


def main() -> None:
    st.title("💡 Smart Street Light Monitoring System")
    st.markdown("Real-time fault detection and predictive maintenance")
    if SETTINGS.demo_mode:
        st.caption("Demo mode: set LUMENWATCH_SUPABASE_URL to read from the backend.")

    loop = get_refresh_loop()
    if st.sidebar.button("Refresh now"):
        loop.refresh(trigger="manual")

    render_fleet(loop)


@st.fragment(run_every=SETTINGS.refresh_interval)
def render_fleet(loop: RefreshLoop) -> None:
    snapshot = loop.snapshot
    error = loop.last_error

    if snapshot is None:
        if error:
            st.error(f"Error loading data: {error}")
        else:
            st.info("Loading street light data...")
        return

    if error:
        st.warning(f"Latest refresh failed, showing previous data: {error}")
    st.caption(f"Data refreshed: {snapshot.refreshed_at:%H:%M:%S} UTC")

    display_stats(snapshot)

    col1, col2 = st.columns([2, 1])
    with col1:
        st.subheader(f"Live Street Light Locations ({snapshot.stats.total} lights)")
        st.plotly_chart(create_map(snapshot), use_container_width=True)
    with col2:
        st.subheader("Maintenance Alerts")
        display_alerts(snapshot.alerts)

    with _db_lock:
        trends = get_storage().hourly_trends(hours=24)
    trends_df = pd.DataFrame(trends, columns=["hour", "ldr_avg", "current_avg", "faults"])

    col3, col4, col5 = st.columns(3)
    with col3:
        st.subheader("LDR Sensor Trends (24h)")
        st.plotly_chart(create_trend_chart(trends_df, "ldr_avg", "LDR", "#3b82f6"), use_container_width=True)
    with col4:
        st.subheader("Current Consumption (24h)")
        st.plotly_chart(
            create_trend_chart(trends_df, "current_avg", "Current (A)", "#f59e0b"),
            use_container_width=True,
        )
    with col5:
        st.subheader("Status Distribution")
        st.plotly_chart(create_status_chart(snapshot), use_container_width=True)

    col6, col7 = st.columns(2)
    with col6:
        st.subheader("Faults per Hour (24h)")
        st.plotly_chart(create_fault_chart(trends_df), use_container_width=True)
    with col7:
        st.subheader("Current Draw Distribution")
        st.plotly_chart(create_current_chart(snapshot), use_container_width=True)

    st.header("Live Street Light Data")
    st.dataframe(lights_frame(snapshot), use_container_width=True)


def display_stats(snapshot: FleetSnapshot) -> None:
    """Display the four stat tiles."""
    stats = snapshot.stats
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Street Lights", stats.total)
    col2.metric("Normal Operation", stats.normal)
    col3.metric("Faulty Lights", stats.faulty)
    col4.metric("Maintenance Alerts", stats.alert_count)


def display_alerts(alerts: list[MaintenanceAlert]) -> None:
    if not alerts:
        st.info("No maintenance alerts at this time")
        return

    for alert in alerts:
        with st.container(border=True):
            st.markdown(
                f"{SEVERITY_ICONS[alert.severity]} **Light #{alert.pole_id}** · `{alert.severity.value}`"
            )
            st.write(alert.description)
            st.caption(
                f"Type: {alert.issue_type.value.replace('_', ' ')} · "
                f"Due: {alert.predicted_date:%Y-%m-%d}"
            )


def lights_frame(snapshot: FleetSnapshot) -> pd.DataFrame:
    """Flatten lights into a DataFrame for the table and map."""
    return pd.DataFrame(
        [
            {
                "id": light.reading.id,
                "location": light.reading.location,
                "ldr_value": light.reading.ldr_value,
                "current_value": light.reading.current_value,
                "status": light.status.value,
                "latitude": light.reading.latitude,
                "longitude": light.reading.longitude,
                "last_updated": light.reading.reading_time,
            }
            for light in snapshot.lights
        ],
        columns=[
            "id", "location", "ldr_value", "current_value",
            "status", "latitude", "longitude", "last_updated",
        ],
    )


def create_map(snapshot: FleetSnapshot) -> go.Figure:
    """Create map of street lights centred on the fleet."""
    lat, lon = map_center(snapshot.readings)
    fig = px.scatter_mapbox(
        lights_frame(snapshot),
        lat="latitude",
        lon="longitude",
        color="status",
        color_discrete_map=STATUS_COLORS,
        hover_name="location",
        hover_data={"id": True, "ldr_value": True, "current_value": ":.2f"},
        zoom=12,
        center={"lat": lat, "lon": lon},
    )
    fig.update_layout(mapbox_style="open-street-map", height=450, margin={"l": 0, "r": 0, "t": 0, "b": 0})
    return fig


def create_trend_chart(df: pd.DataFrame, column: str, label: str, color: str) -> go.Figure:
    """Create line chart of an hourly average."""
    fig = px.line(df, x="hour", y=column, markers=True, color_discrete_sequence=[color])
    fig.update_layout(xaxis_title="Hour", yaxis_title=label, showlegend=False, height=300)
    return fig


def create_fault_chart(df: pd.DataFrame) -> go.Figure:
    fig = px.bar(df, x="hour", y="faults", color_discrete_sequence=["#ef4444"])
    fig.update_layout(xaxis_title="Hour", yaxis_title="Faulty readings", showlegend=False, height=300)
    return fig


def create_status_chart(snapshot: FleetSnapshot) -> go.Figure:
    """Create pie chart of normal vs faulty lights."""
    counts = status_breakdown(snapshot.lights)
    fig = px.pie(
        names=[name.capitalize() for name in counts],
        values=list(counts.values()),
        color=list(counts),
        color_discrete_map=STATUS_COLORS,
    )
    fig.update_layout(height=300)
    return fig


def create_current_chart(snapshot: FleetSnapshot) -> go.Figure:
    buckets = current_distribution(snapshot.readings)
    fig = px.bar(x=list(buckets), y=list(buckets.values()), color_discrete_sequence=["#f59e0b"])
    fig.update_layout(xaxis_title="Current (A)", yaxis_title="Lights", showlegend=False, height=300)
    return fig


if __name__ == "__main__":
    main()
