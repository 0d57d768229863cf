"""Core (UI-agnostic) fuel, costs & billing logic.

This package contains:
- record types and the JSON slot store they persist to
- session state with the append / status-update operations
- filter normalization and context preparation (records -> pandas)
- the fuel metrics engine and page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
