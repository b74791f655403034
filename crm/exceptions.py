from django.core.exceptions import PermissionDenied


class CRMError(Exception):
    """Erro de regra de negócio. Sempre tratado na view que iniciou a ação."""
    status_code = 400
    default_message = "Não foi possível concluir a operação."

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(CRMError):
    default_message = "Dados obrigatórios não informados."


class LeadPermissionError(CRMError, PermissionDenied):
    status_code = 403
    default_message = "Você não tem permissão para editar este lead."


class InsufficientCreditsError(CRMError):
    status_code = 409
    default_message = "Créditos insuficientes."

    def __init__(self, message=None, balance=0, requested=0):
        super().__init__(message, balance=balance, requested=requested)
        self.balance = balance
        self.requested = requested


class DataAccessError(CRMError):
    status_code = 502
    default_message = "Erro ao acessar o banco de dados."


class DownstreamCreationError(DataAccessError):
    default_message = "Erro ao criar a proposta do cliente."


class BulkOperationError(DataAccessError):
    default_message = "A operação em lote foi interrompida."

    def __init__(self, message=None, committed=0, total=0):
        super().__init__(message, committed=committed, total=total)
        self.committed = committed
        self.total = total
