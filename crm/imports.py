"""
Importação de leads (CSV) para o pool compartilhado.
"""
import csv
import logging
import unicodedata

import pandas as pd

from . import data_access
from .bulk import run_in_batches
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {
    'name': ('nome',),
    'convenio': ('convenio',),
    'phone': ('telefone 1', 'telefone1', 'telefone'),
}
OPTIONAL_COLUMNS = {
    'phone2': ('telefone 2', 'telefone2'),
    'cpf': ('cpf',),
    'tag': ('tag',),
}


def normalize_header(name):
    name = unicodedata.normalize('NFKD', str(name)).encode('ascii', 'ignore').decode()
    return ' '.join(name.strip().lower().split())


def only_digits(value):
    if value is None or pd.isna(value):
        return ''
    return ''.join(filter(str.isdigit, str(value)))


def clean_cpf(cpf_str):
    """
    CPF com 11 dígitos, completando com zeros à esquerda.
    Vazio devolve ''; mais de 11 dígitos devolve None (inválido).
    """
    if cpf_str is None or pd.isna(cpf_str):
        return ''
    cpf_str = str(cpf_str).strip()
    if 'E' in cpf_str.upper():
        try:
            cpf_str = "{:.0f}".format(float(cpf_str.replace(',', '.')))
        except ValueError:
            pass
    digits = only_digits(cpf_str)
    if not digits:
        return ''
    digits = digits.zfill(11)
    return digits if len(digits) == 11 else None


def clean_text(value):
    if value is None or pd.isna(value):
        return ''
    return str(value).strip()


def read_leads_csv(file_path):
    last_error = None
    for encoding in ('utf-8-sig', 'latin-1'):
        try:
            return pd.read_csv(file_path, sep=None, engine='python', dtype=str, encoding=encoding)
        except UnicodeDecodeError as e:
            last_error = e
        except (csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise ValidationError(f"Erro ao ler o CSV: {e}") from e
    raise ValidationError(f"Erro ao ler o CSV: {last_error}")


def _resolve_columns(df):
    headers = {normalize_header(c): c for c in df.columns}
    columns = {}
    missing = []
    for key, aliases in REQUIRED_COLUMNS.items():
        found = next((headers[a] for a in aliases if a in headers), None)
        if found is None:
            missing.append(aliases[0])
        columns[key] = found
    if missing:
        raise ValidationError(
            "O arquivo deve conter as colunas: Nome, Convênio, Telefone 1 "
            "(Telefone 2, CPF e Tag são opcionais)",
            missing=missing,
        )
    for key, aliases in OPTIONAL_COLUMNS.items():
        columns[key] = next((headers[a] for a in aliases if a in headers), None)
    return columns


def validate_row(raw):
    """Devolve (linha limpa, None) ou (None, mensagem de erro)."""
    name = clean_text(raw.get('name'))
    convenio = clean_text(raw.get('convenio'))
    phone = only_digits(raw.get('phone'))
    phone2 = only_digits(raw.get('phone2'))
    cpf = clean_cpf(raw.get('cpf'))
    tag = clean_text(raw.get('tag'))

    if not name:
        return None, 'Nome vazio'
    if not convenio:
        return None, 'Convênio vazio'
    if len(phone) < 10:
        return None, 'Telefone 1 inválido'
    if phone2 and len(phone2) < 10:
        return None, 'Telefone 2 inválido'
    if cpf is None:
        return None, 'CPF inválido'

    return {
        'name': name,
        'convenio': convenio,
        'phone': phone,
        'phone2': phone2 or None,
        'cpf': cpf,
        'tag': tag or None,
    }, None


def parse_leads(df):
    columns = _resolve_columns(df)
    valid, errors = [], []
    for index, row in df.iterrows():
        raw = {key: (row[col] if col is not None else None) for key, col in columns.items()}
        cleaned, error = validate_row(raw)
        if error:
            # +2: cabeçalho e índice começando em zero
            errors.append({'line': index + 2, 'error': error})
        else:
            valid.append(cleaned)
    return valid, errors


def import_leads_file(file_path):
    df = read_leads_csv(file_path)
    valid, errors = parse_leads(df)

    totals = {'imported': 0, 'duplicates': 0, 'invalid': 0}

    def insert_batch(batch):
        result = data_access.bulk_insert_pool(batch)
        for key in totals:
            totals[key] += result[key]
        return len(batch)

    if valid:
        run_in_batches(valid, insert_batch)

    result = {
        'total': len(df),
        'imported': totals['imported'],
        'duplicates': totals['duplicates'],
        'invalid': totals['invalid'] + len(errors),
        'errors': errors,
    }
    logger.info(
        "Importação de leads: %s linhas, %s importados, %s duplicados, %s inválidos",
        result['total'], result['imported'], result['duplicates'], result['invalid'],
    )
    return result
