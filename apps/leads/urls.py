from django.urls import path
from . import views

app_name = 'leads'

urlpatterns = [
    path('', views.lead_list_view, name='lead_list'),
    path('create/', views.lead_create_view, name='lead_create'),
    path('team/', views.team_leads_view, name='team_leads'),
    path('import/', views.lead_import_view, name='lead_import'),
    path('import-recurrence/', views.recurrence_import_view, name='recurrence_import'),
    path('export/', views.lead_export_view, name='lead_export'),
    path('<int:pk>/', views.lead_detail_view, name='lead_detail'),
    path('<int:pk>/assign/', views.lead_assign_view, name='lead_assign'),
    path('<int:pk>/change-stage/', views.lead_change_stage_view, name='lead_change_stage'),
    path('<int:pk>/add-note/', views.lead_add_note_view, name='lead_add_note'),
]
