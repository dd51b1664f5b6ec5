"""
Agent plugin manifest (OpenAPI 3.0 document) for the analysis tool.

Served at /api/ai-plugin; /.well-known/ai-plugin.json redirects there.
"""

from __future__ import annotations

import os
from typing import Any

ANALYSIS_PATH = "/api/tools/solana-address-analysis"


def _related_account_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "address": {"type": "string", "description": "The related account address"},
            "totalSolVolume": {
                "type": "string",
                "description": "Total volume with this account (SOL + tokens converted to SOL, formatted)",
            },
        },
    }


def _error_response(description: str) -> dict[str, Any]:
    return {
        "description": description,
        "content": {
            "application/json": {
                "schema": {
                    "type": "object",
                    "properties": {"error": {"type": "string", "description": "Error message"}},
                }
            }
        },
    }


def build_plugin_manifest(server_url: str | None = None) -> dict[str, Any]:
    """Build the manifest; server URL and account id come from env when not given."""
    server_url = server_url or (os.getenv("BUBBLES_PUBLIC_URL") or "http://localhost:8000").strip()
    return {
        "openapi": "3.0.0",
        "info": {
            "title": "Solana Address Analysis Agent",
            "description": "API for analyzing Solana addresses to find related accounts and their SOL transaction volumes.",
            "version": "1.0.0",
        },
        "servers": [{"url": server_url}],
        "x-mb": {
            "account-id": (os.getenv("ACCOUNT_ID") or "").strip(),
            "assistant": {
                "name": "Solana Bubbles Agent",
                "description": "Analyzes Solana wallet addresses to find related accounts and their SOL transaction volumes.",
                "instructions": (
                    "When given a Solana wallet address, use the analysis tool to find the related accounts "
                    "that have interacted with it and show their total SOL volume."
                ),
                "tools": [{"type": "submit-query"}],
                "categories": ["solana", "wallet", "tracker", "agent"],
                "chainIds": [900],
            },
        },
        "paths": {
            ANALYSIS_PATH: {
                "get": {
                    "summary": "Analyze Solana address",
                    "description": "Analyzes a Solana address to find related accounts and their SOL volume.",
                    "operationId": "analyzeSolanaAddress",
                    "parameters": [
                        {
                            "name": "address",
                            "in": "query",
                            "required": True,
                            "schema": {"type": "string"},
                            "description": "The Solana address to analyze",
                        }
                    ],
                    "responses": {
                        "200": {
                            "description": "Successful response",
                            "content": {
                                "application/json": {
                                    "schema": {
                                        "type": "object",
                                        "properties": {
                                            "address": {"type": "string", "description": "The analyzed Solana address"},
                                            "isValid": {"type": "boolean", "description": "Whether the address is valid"},
                                            "relatedAccounts": {
                                                "type": "array",
                                                "description": "Related accounts ordered by SOL volume",
                                                "items": _related_account_schema(),
                                            },
                                            "error": {"type": "string", "description": "Error message if analysis failed"},
                                        },
                                    }
                                }
                            },
                        },
                        "400": _error_response("Bad request"),
                        "500": _error_response("Server error"),
                    },
                }
            }
        },
    }
