from functools import wraps

from django.core.exceptions import PermissionDenied
from django.shortcuts import redirect


def role_required(allowed_roles=()):
    """
    Decorator para views que verifica se o usuário logado
    tem um dos 'roles' permitidos. Superusuários sempre passam.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            # Se o usuário não estiver logado, o @login_required (usado antes)
            # já o terá redirecionado para o login.
            if not request.user.is_authenticated:
                return redirect('login')

            if request.user.role not in allowed_roles and not request.user.is_superuser:
                raise PermissionDenied

            return view_func(request, *args, **kwargs)
        return _wrapped_view
    return decorator


class RoleRequiredMixin:
    """
    Um Mixin que funciona como o nosso decorator @role_required
    para Vistas Baseadas em Classes (CBVs).
    """
    allowed_roles = []  # Lista de roles permitidos

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return super().dispatch(request, *args, **kwargs)

        if request.user.role not in self.allowed_roles and not request.user.is_superuser:
            raise PermissionDenied

        return super().dispatch(request, *args, **kwargs)
