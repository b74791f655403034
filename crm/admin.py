from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import (
    AuditLog, BlacklistEntry, ClockEntry, Commission, CommissionRule, Company,
    Lead, LeadAlert, PoolLead, Proposal, Sale, User, UserCredit,
)


# ---
# 1. Configuração do Admin para o Usuário Customizado
# ---
@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'company', 'is_active')
    list_filter = ('role', 'company', 'is_active')
    ordering = ('email',)

    fieldsets = UserAdmin.fieldsets + (
        ('Controle de Acesso (CRM)', {
            'fields': ('role', 'manager', 'company'),
        }),
    )

    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Controle de Acesso (CRM)', {
            'fields': ('email', 'role', 'manager', 'company'),
        }),
    )


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ('name', 'is_active', 'created_at')
    search_fields = ('name',)


# ---
# 2. Leads
# ---
@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ('name', 'cpf', 'convenio', 'status', 'assigned_to', 'created_at')
    list_filter = ('status', 'convenio', 'tag')
    search_fields = ('name', 'cpf', 'phone')
    date_hierarchy = 'created_at'
    raw_id_fields = ('assigned_to', 'created_by')
    readonly_fields = ('history',)


@admin.register(PoolLead)
class PoolLeadAdmin(admin.ModelAdmin):
    list_display = ('name', 'convenio', 'ddd', 'tag', 'is_available', 'drawn_by')
    list_filter = ('is_available', 'convenio', 'ddd')
    search_fields = ('name', 'cpf', 'phone')
    raw_id_fields = ('drawn_by',)


@admin.register(UserCredit)
class UserCreditAdmin(admin.ModelAdmin):
    list_display = ('user', 'balance', 'updated_at')
    search_fields = ('user__email',)


@admin.register(LeadAlert)
class LeadAlertAdmin(admin.ModelAdmin):
    list_display = ('alert_date', 'lead', 'user', 'is_resolved')
    list_filter = ('is_resolved',)
    raw_id_fields = ('lead', 'user')


@admin.register(BlacklistEntry)
class BlacklistEntryAdmin(admin.ModelAdmin):
    list_display = ('cpf', 'reason', 'created_by', 'created_at')
    search_fields = ('cpf',)


# ---
# 3. Vendas, propostas e comissões
# ---
@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ('data_venda', 'banco', 'tipo_operacao', 'consultant', 'status', 'parcela')
    list_filter = ('banco', 'status', 'company')
    search_fields = ('nome', 'cpf')
    date_hierarchy = 'data_venda'
    raw_id_fields = ('consultant',)


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    list_display = ('client_name', 'cpf', 'banco', 'pipeline_stage', 'origem_lead', 'assigned_to', 'created_at')
    list_filter = ('pipeline_stage', 'origem_lead')
    search_fields = ('client_name', 'cpf')


@admin.register(CommissionRule)
class CommissionRuleAdmin(admin.ModelAdmin):
    list_display = ('bank_name', 'product_name', 'calculation_model', 'commission_type',
                    'commission_value', 'company', 'is_active')
    list_filter = ('calculation_model', 'is_active', 'company')
    search_fields = ('bank_name', 'product_name')


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ('proposal_date', 'user', 'commission_amount', 'status')
    list_filter = ('status', 'company')
    date_hierarchy = 'proposal_date'


# ---
# 4. Ponto e auditoria
# ---
@admin.register(ClockEntry)
class ClockEntryAdmin(admin.ModelAdmin):
    list_display = ('clock_date', 'user', 'clock_type', 'clock_time')
    list_filter = ('clock_type',)
    date_hierarchy = 'clock_date'


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'user', 'action')
    list_filter = ('action', 'user')
    date_hierarchy = 'timestamp'
