from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

# Main URL Configuration
# Every app answers JSON; the Django admin is the back-office panel

urlpatterns = [

    path('admin/', admin.site.urls),
    path('accounts/', include('apps.accounts.urls')),
    path('dashboard/', include('apps.core.urls')),
    path('leads/', include('apps.leads.urls')),
    path('billing/', include('apps.billing.urls')),
    path('invoices/', include('apps.invoices.urls')),
    path('proposals/', include('apps.proposals.urls')),
    path('wallet/', include('apps.wallet.urls')),
    path('api/whatsapp/', include('apps.whatsapp.urls')),

]

if settings.DEBUG:
    # Media files (invoice uploads)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

admin.site.site_header = 'Energy Sales CRM'
admin.site.site_title = 'Energy Sales CRM'
admin.site.index_title = 'Administration'
