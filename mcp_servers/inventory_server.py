"""
Inventory Ledger MCP Server

Provides tools for reading and changing the stock ledger of one tenant:
products, stock movements, warehouses and derived analytics.
"""

import dataclasses
import json
import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
import env_loader  # noqa: F401

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from mcp.server import Server
from mcp.types import Tool, TextContent

from stockledger.config import Settings
from stockledger.models import OperationResult, format_timestamp, parse_timestamp
from stockledger.services import InventorySession

logger = logging.getLogger(__name__)

app = Server("inventory-ledger")

_session: Optional[InventorySession] = None


def get_session() -> InventorySession:
    """Oturumu ilk araç çağrısında açar."""
    global _session
    if _session is None:
        _session = InventorySession.from_settings(Settings.from_env()).start()
    return _session


def set_session(session: Optional[InventorySession]) -> None:
    global _session
    _session = session


def _to_json(obj):
    """Dataclass, Enum, datetime ve Decimal değerlerini JSON serializable yapar."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _to_json(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return format_timestamp(obj)
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_json(i) for i in obj]
    return obj


def _result(data):
    return [TextContent(type="text", text=json.dumps(_to_json(data), indent=2, ensure_ascii=False))]


def _operation(result: OperationResult) -> Dict:
    return {
        "success": result.ok,
        "status": result.status.value,
        "error": result.error,
        "warnings": result.warnings,
        "data": result.data,
    }


def _parse_month(value: Optional[str]) -> Optional[datetime]:
    """"YYYY-MM" metnini ayın ilk gününe çevirir; boşsa None (bu ay)."""
    if not value:
        return None
    try:
        return parse_timestamp(f"{value}-01")
    except ValueError:
        raise ValueError(f"invalid month '{value}', expected YYYY-MM") from None


_MONTH = {"type": "string", "description": "Optional: YYYY-MM, defaults to the current month"}


@app.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(name="list_warehouses", description="List warehouses and the active one",
             inputSchema={"type": "object", "properties": {}}),
        Tool(name="switch_warehouse", description="Make a warehouse the active scope",
             inputSchema={"type": "object", "properties": {"warehouse_id": {"type": "string"}}, "required": ["warehouse_id"]}),
        Tool(name="list_products", description="List products of the active warehouse",
             inputSchema={"type": "object", "properties": {"low_stock_only": {"type": "boolean", "default": False}}}),
        Tool(name="list_transactions", description="List recent stock movements of the active warehouse",
             inputSchema={"type": "object", "properties": {"limit": {"type": "integer", "default": 50}}}),
        Tool(name="create_product", description="Create a product with an optional initial quantity",
             inputSchema={"type": "object", "properties": {
                 "name": {"type": "string"}, "brand": {"type": "string"}, "variant": {"type": "string"},
                 "initial_quantity": {"type": "integer", "default": 0}, "notes": {"type": "string"},
                 "low_stock_threshold": {"type": "integer", "default": 5}}, "required": ["name"]}),
        Tool(name="adjust_stock", description="Record a stock in or stock out movement",
             inputSchema={"type": "object", "properties": {
                 "product_id": {"type": "string"}, "amount": {"type": "integer"},
                 "direction": {"type": "string", "enum": ["in", "out"]}, "notes": {"type": "string"},
                 "backdated_at": {"type": "string", "description": "Optional: ISO 8601 timestamp in the past"}},
                 "required": ["product_id", "amount", "direction"]}),
        Tool(name="delete_transaction", description="Delete a movement and reverse its effect on quantity",
             inputSchema={"type": "object", "properties": {"transaction_id": {"type": "string"}}, "required": ["transaction_id"]}),
        Tool(name="delete_product", description="Delete a product together with its movements",
             inputSchema={"type": "object", "properties": {"product_id": {"type": "string"}}, "required": ["product_id"]}),
        Tool(name="get_summary", description="Stock totals and month-over-month movement change",
             inputSchema={"type": "object", "properties": {}}),
        Tool(name="get_opening_stock", description="Reconstructed opening stock per product for a month",
             inputSchema={"type": "object", "properties": {"month": _MONTH}}),
        Tool(name="get_top_consumption", description="Top consumed products in a month",
             inputSchema={"type": "object", "properties": {"month": _MONTH, "limit": {"type": "integer", "default": 5}}}),
        Tool(name="get_product_performance", description="Consumption, trend and turnover per product",
             inputSchema={"type": "object", "properties": {"search": {"type": "string"}}}),
        Tool(name="reconcile_ledger", description="Compare product quantities with ledger sums",
             inputSchema={"type": "object", "properties": {}}),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "list_warehouses": lambda a: list_warehouses(),
        "switch_warehouse": lambda a: switch_warehouse(a["warehouse_id"]),
        "list_products": lambda a: list_products(a.get("low_stock_only", False)),
        "list_transactions": lambda a: list_transactions(a.get("limit", 50)),
        "create_product": lambda a: create_product(a),
        "adjust_stock": lambda a: adjust_stock(
            a["product_id"], a["amount"], a["direction"], a.get("notes", ""), a.get("backdated_at")
        ),
        "delete_transaction": lambda a: _operation(get_session().delete_transaction(a["transaction_id"])),
        "delete_product": lambda a: _operation(get_session().delete_product(a["product_id"])),
        "get_summary": lambda a: get_summary(),
        "get_opening_stock": lambda a: get_opening_stock(a.get("month")),
        "get_top_consumption": lambda a: get_top_consumption(a.get("month"), a.get("limit", 5)),
        "get_product_performance": lambda a: {
            "success": True, "data": get_session().product_performance(a.get("search", ""))
        },
        "reconcile_ledger": lambda a: {"success": True, "data": get_session().reconcile()},
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    return _result(handler(arguments))


# --- Implementation ---

def list_warehouses() -> Dict:
    session = get_session()
    session.refresh_warehouses()
    return {
        "success": True,
        "warehouse_enabled": session.warehouse_enabled,
        "active_warehouse_id": session.warehouse_id,
        "count": len(session.warehouses),
        "data": session.warehouses,
    }


def switch_warehouse(warehouse_id: str) -> Dict:
    if not get_session().switch_warehouse(warehouse_id):
        return {"success": False, "error": "Warehouse not found or warehouses disabled"}
    return {"success": True, "active_warehouse_id": warehouse_id}


def list_products(low_stock_only: bool = False) -> Dict:
    session = get_session()
    session.refresh_products()
    products = session.low_stock_products() if low_stock_only else session.products
    return {"success": True, "count": len(products), "data": products}


def list_transactions(limit: int = 50) -> Dict:
    session = get_session()
    session.refresh_transactions()
    return {"success": True, "count": len(session.transactions), "data": session.transactions[:limit]}


def create_product(arguments: Dict[str, Any]) -> Dict:
    fields = {
        k: arguments[k]
        for k in ("brand", "variant", "initial_quantity", "notes", "low_stock_threshold")
        if k in arguments
    }
    return _operation(get_session().create_product(arguments["name"], **fields))


def adjust_stock(product_id: str, amount: int, direction: str, notes: str = "",
                 backdated_at: Optional[str] = None) -> Dict:
    return _operation(get_session().adjust_stock(product_id, amount, direction, notes, backdated_at))


def get_opening_stock(month: Optional[str] = None) -> Dict:
    try:
        month_begin = _parse_month(month)
    except ValueError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "data": get_session().opening_stock(month_begin)}


def get_top_consumption(month: Optional[str] = None, limit: int = 5) -> Dict:
    try:
        month_begin = _parse_month(month)
    except ValueError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "data": get_session().top_consumption(month_begin, limit)}


def get_summary() -> Dict:
    session = get_session()
    return {
        "success": True,
        "data": {
            **session.totals(),
            "month_over_month": session.month_over_month(),
            "low_stock_count": len(session.low_stock_products()),
        },
    }


if __name__ == "__main__":
    import asyncio
    from mcp.server.stdio import stdio_server

    # stdout MCP protokolüne ait; loglar stderr'e
    logging.basicConfig(
        level=getattr(logging, Settings.from_env().log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    async def run():
        async with stdio_server() as (read, write):
            await app.run(read, write, app.create_initialization_options())

    asyncio.run(run())
