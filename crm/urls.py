from django.urls import path
from . import views  # Views da API de leads e dashboard
from . import commission_views

urlpatterns = [
    # URLs de Leads
    path('api/leads/', views.api_leads, name='api_leads'),
    path('api/leads/<int:lead_id>/status/', views.api_lead_status, name='api_lead_status'),
    path('api/leads/<int:lead_id>/digitacao/', views.api_lead_digitacao, name='api_lead_digitacao'),
    path('api/leads/<int:lead_id>/assign/', views.api_lead_assign, name='api_lead_assign'),

    # URLs de Solicitação de Leads e Créditos
    path('api/leads/request/', views.api_request_leads, name='api_request_leads'),
    path('api/leads/pool/', views.api_pool, name='api_pool'),
    path('api/credits/<int:user_id>/', views.api_grant_credits, name='api_grant_credits'),

    # URLs de Operações em Massa
    path('api/leads/bulk/delete/', views.api_bulk_delete, name='api_bulk_delete'),
    path('api/leads/bulk/reassign/', views.api_bulk_reassign, name='api_bulk_reassign'),

    # URLs do Dashboard
    path('api/dashboard/', views.api_dashboard, name='api_dashboard'),
    path('api/ranking/', views.api_ranking, name='api_ranking'),
    path('api/absenteeism/', views.api_absenteeism, name='api_absenteeism'),

    # URLs de Gestão de Comissões
    path('api/commission-rules/',
         commission_views.CommissionRuleListView.as_view(),
         name='commission_list'),

    path('api/commission-rules/<int:pk>/',
         commission_views.CommissionRuleUpdateView.as_view(),
         name='commission_update'),

    path('api/commission-rules/<int:pk>/delete/',
         commission_views.CommissionRuleDeleteView.as_view(),
         name='commission_delete'),

    # URLs de Carga de Leads
    path('carga-leads/', views.carga_leads, name='carga_leads'),
]
