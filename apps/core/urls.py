from django.urls import path
from . import views


app_name = 'core'

urlpatterns = [
    path('stats/', views.dashboard_stats_view, name='dashboard_stats'),
    path('public-stats/', views.public_stats_view, name='public_stats'),
    path('select-company/', views.company_selector_view, name='company_selector'),
]
