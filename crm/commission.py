"""
Cálculo do valor de uma venda (televendas) a partir das regras de comissão.

O mesmo cálculo é usado para o período atual e para o período anterior nos
dashboards, por isso as funções daqui não tocam no banco: recebem a venda e a
lista de regras já carregadas.
"""
from decimal import Decimal

ZERO = Decimal('0.0')


def row_value(row, field):
    if isinstance(row, dict):
        return row.get(field)
    return getattr(row, field, None)


def _norm(value):
    return (value or '').strip().lower()


def _money(value):
    if value is None:
        return ZERO
    return Decimal(value) if not isinstance(value, Decimal) else value


def _product_matches(rule_product, operation):
    # Contenção em qualquer direção, como no cadastro original de regras.
    return (
        rule_product == operation
        or rule_product in operation
        or operation in rule_product
    )


def match_rule(sale, rules, company_id=None):
    """
    Devolve a regra aplicável à venda, ou None.

    Ordem de prioridade:
      1. banco + produto + regra da empresa
      2. banco + produto + regra global
      3. apenas banco (qualquer produto/empresa)
    Regras inativas são ignoradas.
    """
    operation = _norm(row_value(sale, 'tipo_operacao'))
    bank = _norm(row_value(sale, 'banco'))
    if company_id is None:
        company_id = row_value(sale, 'company_id')

    active = [r for r in rules if row_value(r, 'is_active') is not False]

    company_match = None
    global_match = None
    bank_only = None
    for rule in active:
        if _norm(row_value(rule, 'bank_name')) != bank:
            continue
        if bank_only is None:
            bank_only = rule
        if not _product_matches(_norm(row_value(rule, 'product_name')), operation):
            continue
        rule_company = row_value(rule, 'company_id')
        if rule_company is None:
            if global_match is None:
                global_match = rule
        elif company_id and rule_company == company_id:
            if company_match is None:
                company_match = rule

    return company_match or global_match or bank_only


def compute_sale_value(sale, rules, company_id=None):
    """Valor da venda segundo o modelo de cálculo da regra aplicável."""
    saldo_devedor = _money(row_value(sale, 'saldo_devedor'))
    troco = _money(row_value(sale, 'troco'))

    rule = match_rule(sale, rules, company_id)
    if rule is not None:
        model = _norm(row_value(rule, 'calculation_model'))
        if model == 'saldo_devedor':
            return saldo_devedor
        elif model in ('valor_bruto', 'bruto'):
            return saldo_devedor + troco
        elif model == 'troco':
            return troco
        elif model == 'ambos':
            return saldo_devedor + troco

    if _norm(row_value(sale, 'tipo_operacao')) == 'portabilidade':
        return saldo_devedor

    return _money(row_value(sale, 'parcela'))


def estimate_commission(sale, rules, company_id=None):
    """
    Comissão prevista para uma venda: percentual sobre o valor calculado
    ou valor fixo, conforme a regra. Sem regra, não há comissão.
    """
    rule = match_rule(sale, rules, company_id)
    if rule is None:
        return ZERO

    value = _money(row_value(rule, 'commission_value'))
    if _norm(row_value(rule, 'commission_type')) == 'fixed':
        return value

    base = compute_sale_value(sale, rules, company_id)
    return (base * value / Decimal(100)).quantize(Decimal('0.01'))
