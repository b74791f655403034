from decimal import Decimal

from django.contrib.auth.mixins import LoginRequiredMixin
from django.forms.models import model_to_dict
from django.shortcuts import get_object_or_404
from django.views import View

from .decorators import RoleRequiredMixin
from .exceptions import CRMError
from .forms import CommissionRuleForm
from .models import AuditLog, CommissionRule, User
from .notifications import notify
from .views import json_response, read_json_body


RULE_FIELDS = CommissionRuleForm.Meta.fields


def _rule_to_dict(rule):
    data = model_to_dict(rule, fields=RULE_FIELDS)
    data['id'] = rule.id
    return data


def _for_log(data):
    # Converte Decimals para float para serem compatíveis com JSON
    return {
        k: float(v) if isinstance(v, Decimal) else getattr(v, 'pk', v)
        for k, v in data.items()
    }


class CommissionRuleMixin(LoginRequiredMixin, RoleRequiredMixin):
    allowed_roles = [User.Role.ADMIN]  # Apenas Admins
    http_method_names = ['get', 'post']

    def invalid_form(self, form):
        notify(self.request, "Regra inválida", "Verifique os campos informados.", kind="error")
        return json_response({'error': "Dados inválidos.", 'fields': form.errors.get_json_data()}, status=400)

    def read_form(self, instance=None):
        try:
            body = read_json_body(self.request)
        except CRMError as e:
            return None, json_response({'error': e.message}, status=e.status_code)
        if instance is not None:
            # Atualização parcial: campos ausentes mantêm o valor atual
            body = {**model_to_dict(instance, fields=RULE_FIELDS), **body}
        else:
            body.setdefault('is_active', True)
        return CommissionRuleForm(body, instance=instance), None


class CommissionRuleListView(CommissionRuleMixin, View):
    """(Read/Create) - Lista as regras de comissão e cria novas."""

    def get(self, request):
        rules = CommissionRule.objects.select_related('company').order_by('bank_name', 'product_name')
        return json_response({'rules': [_rule_to_dict(rule) for rule in rules]})

    def post(self, request):
        form, error = self.read_form()
        if error:
            return error
        if not form.is_valid():
            return self.invalid_form(form)

        rule = form.save()
        notify(request, "Sucesso", "Regra de comissão criada com sucesso.")

        # Log de auditoria
        AuditLog.objects.create(
            user=request.user,
            action="create_commission_rule",
            details={"rule_id": rule.id, **_for_log(form.cleaned_data)}
        )
        return json_response({'rule': _rule_to_dict(rule)}, status=201)


class CommissionRuleUpdateView(CommissionRuleMixin, View):
    """(Update) - Edita uma regra."""

    def get(self, request, pk):
        rule = get_object_or_404(CommissionRule, pk=pk)
        return json_response({'rule': _rule_to_dict(rule)})

    def post(self, request, pk):
        rule = get_object_or_404(CommissionRule, pk=pk)
        old_data = _for_log(model_to_dict(rule, fields=RULE_FIELDS))

        form, error = self.read_form(instance=rule)
        if error:
            return error
        if not form.is_valid():
            return self.invalid_form(form)

        rule = form.save()
        notify(request, "Sucesso", "Regra de comissão atualizada com sucesso.")

        AuditLog.objects.create(
            user=request.user,
            action="update_commission_rule",
            details={
                "rule_id": rule.id,
                "changes": {
                    "old": old_data,
                    "new": _for_log(form.cleaned_data),
                }
            }
        )
        return json_response({'rule': _rule_to_dict(rule)})


class CommissionRuleDeleteView(CommissionRuleMixin, View):
    """(Delete) - Elimina uma regra."""
    http_method_names = ['post']

    def post(self, request, pk):
        rule = get_object_or_404(CommissionRule, pk=pk)
        # Guarda os dados antes de eliminar para o log
        details = {"rule_id": rule.id, **_for_log(model_to_dict(rule, fields=RULE_FIELDS))}
        rule.delete()

        notify(request, "Sucesso", f"Regra '{rule.bank_name} / {rule.product_name}' eliminada com sucesso.")
        AuditLog.objects.create(user=request.user, action="delete_commission_rule", details=details)
        return json_response({'deleted': details['rule_id']})
