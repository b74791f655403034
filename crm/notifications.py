import logging

from django.contrib import messages

logger = logging.getLogger(__name__)


def notify(request, title, description, kind="info"):
    """
    Aviso para o usuário (toast). Não devolve nada; as regras de negócio
    nunca dependem do resultado.
    """
    text = f"{title}: {description}" if description else title
    if kind == "error":
        logger.warning("[%s] %s", getattr(request.user, 'email', '-'), text)
        level = messages.ERROR
    else:
        logger.info("[%s] %s", getattr(request.user, 'email', '-'), text)
        level = messages.INFO

    # Requisições sem middleware de mensagens (ex.: testes) apenas registram o log.
    messages.add_message(request, level, text, fail_silently=True)
