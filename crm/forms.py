from django import forms

from .models import CommissionRule, User


class CommissionRuleForm(forms.ModelForm):
    """
    Formulário para criar e editar Regras de Comissão.
    """
    class Meta:
        model = CommissionRule
        fields = (
            'bank_name', 'product_name', 'calculation_model', 'commission_type',
            'commission_value', 'company', 'description', 'is_active',
        )
        help_texts = {
            'product_name': "Tipo de operação da venda (ex: Portabilidade, Novo, Refinanciamento).",
            'company': "Deixe vazio para uma regra global.",
        }

    def clean_bank_name(self):
        return self.cleaned_data['bank_name'].strip().upper()

    def clean_product_name(self):
        return self.cleaned_data['product_name'].strip()

    def clean_commission_value(self):
        value = self.cleaned_data['commission_value']
        if value < 0:
            raise forms.ValidationError('O valor da comissão não pode ser negativo.')
        return value


class LeadRequestForm(forms.Form):
    """Filtros da solicitação de leads do pool."""
    count = forms.IntegerField(min_value=1)
    convenio = forms.CharField(required=False)
    ddds = forms.CharField(required=False, help_text="DDDs separados por vírgula")
    tags = forms.CharField(required=False, help_text="Tags separadas por vírgula")

    def _split(self, field):
        value = self.cleaned_data.get(field) or ''
        return [v.strip() for v in value.split(',') if v.strip()]

    def clean_ddds(self):
        return self._split('ddds')

    def clean_tags(self):
        return self._split('tags')


class LeadUploadForm(forms.Form):
    csv_file = forms.FileField()


class AssignLeadForm(forms.Form):
    assigned_to = forms.ModelChoiceField(queryset=User.objects.filter(is_active=True))
