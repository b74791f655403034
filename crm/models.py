from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models


# ---
# Modelo 1: Empresa
# ---
class Company(models.Model):
    name = models.CharField(max_length=150, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name


# ---
# Modelo 2: Usuário (O Modelo Central)
# ---
class User(AbstractUser):
    """
    Modelo de Usuário customizado que substitui o User padrão do Django.
    Ele usa 'email' como login e adiciona 'role', 'manager' e 'company'.
    """
    class Role(models.TextChoices):
        CONSULTANT = "consultant", "Consultor"
        MANAGER = "manager", "Gestor"
        ADMIN = "admin", "Administrador"

    email = models.EmailField(unique=True)
    username = models.CharField(max_length=150, unique=False, blank=True, null=True)

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CONSULTANT)

    manager = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        limit_choices_to={'role': Role.MANAGER},
        related_name='team_members'
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='users'
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def display_name(self):
        return self.get_full_name() or (self.email or '').split('@')[0] or 'Usuário'

    def __str__(self):
        return self.email


# ---
# Modelo 3: Leads (carteira do consultor)
# ---
class LeadStatus(models.TextChoices):
    NEW_LEAD = "new_lead", "Novo Lead"
    EM_ANDAMENTO = "em_andamento", "Em Andamento"
    AGUARDANDO_RETORNO = "aguardando_retorno", "Aguardando Retorno"
    CLIENTE_FECHADO = "cliente_fechado", "Cliente Fechado"
    RECUSOU_OFERTA = "recusou_oferta", "Recusado"
    CONTATO_FUTURO = "contato_futuro", "Contato Futuro"
    AGENDAMENTO = "agendamento", "Agendamento"
    NAO_E_CLIENTE = "nao_e_cliente", "Não é o cliente"
    SEM_INTERESSE = "sem_interesse", "Sem Interesse"
    SEM_RETORNO = "sem_retorno", "Sem retorno"
    NAO_E_WHATSAPP = "nao_e_whatsapp", "Não é WhatsApp"

    @classmethod
    def label_for(cls, value):
        """Rótulo legível; status fora da enumeração nunca quebram a tela."""
        try:
            return cls(value).label
        except ValueError:
            return "Status desconhecido"


class Lead(models.Model):
    name = models.CharField(max_length=255)
    cpf = models.CharField(max_length=11, blank=True, db_index=True)
    phone = models.CharField(max_length=20)
    phone2 = models.CharField(max_length=20, blank=True, null=True)
    convenio = models.CharField(max_length=100, db_index=True)
    tag = models.CharField(max_length=100, blank=True, null=True)

    status = models.CharField(
        max_length=30, choices=LeadStatus.choices, default=LeadStatus.NEW_LEAD, db_index=True
    )

    assigned_to = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_leads'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_leads'
    )

    origem_lead = models.CharField(max_length=100, blank=True)
    banco_operacao = models.CharField(max_length=100, blank=True)
    requested_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    # Recusa
    rejection_reason = models.CharField(max_length=50, blank=True)
    rejection_offered_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    rejection_bank = models.CharField(max_length=100, blank=True)
    rejection_description = models.TextField(blank=True)

    # Agendamento / contato futuro
    future_contact_date = models.DateField(null=True, blank=True, db_index=True)
    future_contact_time = models.TimeField(null=True, blank=True)

    history = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    @property
    def status_label(self):
        return LeadStatus.label_for(self.status)

    def __str__(self):
        return f"{self.name} ({self.status_label})"


# ---
# Modelo 4: Base de leads disponíveis (pool compartilhado)
# ---
class PoolLead(models.Model):
    name = models.CharField(max_length=255)
    cpf = models.CharField(max_length=11, blank=True, db_index=True)
    phone = models.CharField(max_length=20, db_index=True)
    phone2 = models.CharField(max_length=20, blank=True, null=True)
    convenio = models.CharField(max_length=100, db_index=True)
    tag = models.CharField(max_length=100, blank=True, null=True)
    ddd = models.CharField(max_length=2, blank=True, db_index=True)
    banco = models.CharField(max_length=100, blank=True)

    is_available = models.BooleanField(default=True, db_index=True)
    drawn_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='drawn_pool_leads'
    )
    drawn_at = models.DateTimeField(null=True, blank=True)
    imported_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['imported_at', 'id']

    def save(self, *args, **kwargs):
        if not self.ddd and self.phone:
            self.ddd = self.phone[:2]
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} - {self.convenio} ({self.ddd})"


# ---
# Modelo 5: Créditos de leads
# ---
class UserCredit(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='lead_credit')
    balance = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(balance__gte=0), name='user_credit_balance_non_negative'),
        ]

    def __str__(self):
        return f"{self.user.email}: {self.balance} créditos"


# ---
# Modelo 6: Televendas (Vendas)
# ---
class Sale(models.Model):
    consultant = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sales'
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sales'
    )

    nome = models.CharField(max_length=255, blank=True)
    cpf = models.CharField(max_length=11, blank=True, db_index=True)
    banco = models.CharField(max_length=100)
    tipo_operacao = models.CharField(max_length=100, blank=True)

    parcela = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    troco = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    saldo_devedor = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=50, blank=True, db_index=True)
    data_venda = models.DateField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.banco} / {self.tipo_operacao} em {self.data_venda}"


# ---
# Modelo 7: Regras de Comissão
# ---
class CommissionRule(models.Model):
    """
    Regra de comissão por banco + produto.
    'calculation_model' define a base de cálculo da venda;
    'commission_type' + 'commission_value' definem a comissão sobre essa base.
    """
    class CalculationModel(models.TextChoices):
        SALDO_DEVEDOR = "saldo_devedor", "Saldo devedor"
        VALOR_BRUTO = "valor_bruto", "Valor bruto"
        BRUTO = "bruto", "Bruto"
        TROCO = "troco", "Troco"
        AMBOS = "ambos", "Saldo devedor + troco"

    class CommissionType(models.TextChoices):
        PERCENTAGE = "percentage", "Percentual (%)"
        FIXED = "fixed", "Valor fixo (R$)"

    bank_name = models.CharField(max_length=100, db_index=True)
    product_name = models.CharField(max_length=100)
    calculation_model = models.CharField(
        max_length=20, choices=CalculationModel.choices, default=CalculationModel.SALDO_DEVEDOR
    )
    commission_type = models.CharField(
        max_length=20, choices=CommissionType.choices, default=CommissionType.PERCENTAGE
    )
    commission_value = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.0'),
                                           help_text="Ex: 3.5 para 3.5% ou 150.00 para valor fixo")

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='commission_rules',
        help_text="Vazio = regra global"
    )
    description = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        scope = self.company.name if self.company_id else "global"
        return f"{self.bank_name} / {self.product_name} ({self.calculation_model}, {scope})"


# ---
# Modelo 8: Comissões (lançamentos)
# ---
class Commission(models.Model):
    class Status(models.TextChoices):
        PREVIEW = "preview", "Prévia"
        PAID = "paid", "Paga"

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='commissions')
    company = models.ForeignKey(
        Company,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='commissions'
    )
    bank_name = models.CharField(max_length=100, blank=True)
    product_name = models.CharField(max_length=100, blank=True)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.0'))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PREVIEW)
    proposal_date = models.DateField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user.email}: R$ {self.commission_amount} ({self.status})"


# ---
# Modelo 9: Propostas (cliente convertido)
# ---
class Proposal(models.Model):
    lead = models.ForeignKey(Lead, on_delete=models.SET_NULL, null=True, blank=True, related_name='proposals')
    client_name = models.CharField(max_length=255)
    cpf = models.CharField(max_length=11, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    convenio = models.CharField(max_length=100, blank=True)
    banco = models.CharField(max_length=100, blank=True)
    valor_operacao = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    parcela = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    pipeline_stage = models.CharField(max_length=50, default="contato_iniciado")
    client_status = models.CharField(max_length=50, default="cliente_intencionado")
    origem_lead = models.CharField(max_length=50, default="leads_premium")

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_proposals'
    )
    assigned_to = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_proposals'
    )
    company = models.ForeignKey(Company, on_delete=models.SET_NULL, null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.client_name} ({self.pipeline_stage})"


# ---
# Modelo 10: Blacklist de CPF (recusas)
# ---
class BlacklistEntry(models.Model):
    cpf = models.CharField(max_length=11, db_index=True)
    reason = models.CharField(max_length=255)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "blacklist entries"

    def __str__(self):
        return f"{self.cpf}: {self.reason}"


# ---
# Modelo 11: Alertas de contato futuro
# ---
class LeadAlert(models.Model):
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='alerts')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='lead_alerts')
    alert_date = models.DateField(db_index=True)
    note = models.TextField(blank=True)
    is_resolved = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Alerta {self.alert_date} - {self.lead.name}"


# ---
# Modelo 12: Ponto eletrônico
# ---
class ClockEntry(models.Model):
    class ClockType(models.TextChoices):
        ENTRADA = "entrada", "Entrada"
        PAUSA_INICIO = "pausa_inicio", "Início da pausa"
        PAUSA_FIM = "pausa_fim", "Fim da pausa"
        SAIDA = "saida", "Saída"

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='clock_entries')
    clock_date = models.DateField(db_index=True)
    clock_type = models.CharField(max_length=20, choices=ClockType.choices)
    clock_time = models.DateTimeField()

    def __str__(self):
        return f"{self.user.email} {self.clock_type} {self.clock_time}"


# ---
# Modelo 13: Logs de Auditoria
# ---
class AuditLog(models.Model):
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    action = models.CharField(max_length=100, db_index=True)
    details = models.JSONField(null=True, blank=True)

    def __str__(self):
        return f"[{self.timestamp}] {self.user} - {self.action}"
