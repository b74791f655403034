"""URLs do projeto."""
from django.contrib import admin
from django.urls import path, include

# Importações necessárias para servir Static e Media files em desenvolvimento
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),
    
    # URLs do sistema de autenticação do Django (login, logout, etc.)
    path('accounts/', include('django.contrib.auth.urls')),
    
    # Roteia todas as outras URLs para a aplicação crm
    path('', include('crm.urls')),
]

# Configuração para servir Static e Media files *apenas* durante o desenvolvimento (DEBUG=True)
if settings.DEBUG:
    # Serve arquivos estáticos (CSS, JS, o seu logo)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
    
    # Serve arquivos de Mídia (uploads, como os temporários da Carga de Dados)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)