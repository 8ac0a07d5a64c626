"""SalesDesk: daily activity, client pipeline, EOD reporting and audit handoff."""

__version__ = "1.0.0"
