"""
Environment Constants

Canonical ERP module switches and movement-code categories carried by every
tenant environment.
"""

# Fixed key set of the per-environment module map. Order matches the portal menu.
CANONICAL_MODULES: tuple[str, ...] = (
    "dashboard_principal",
    "simpledfe",
    "gestao_compras",
    "gestao_financeira",
    "gestao_contabil",
    "gestao_fiscal",
    "gestao_rh",
    "assistentes_virtuais",
    "parametros",
)

# Environment field -> legacy configuration key for each movement-code category
MOVEMENT_CATEGORIES: dict[str, str] = {
    "purchase_request_movements": "MOVIMENTOS_SOLICITACAO_COMPRAS",
    "purchase_order_movements": "MOVIMENTOS_ORDEM_COMPRA",
    "product_invoice_movements": "MOVIMENTOS_NOTA_FISCAL_PRODUTO",
    "service_invoice_movements": "MOVIMENTOS_NOTA_FISCAL_SERVICO",
    "other_movements": "MOVIMENTOS_OUTRAS_MOVIMENTACOES",
}
