from django.urls import path
from . import views

app_name = 'proposals'

urlpatterns = [
    path('', views.proposal_list_view, name='proposal_list'),
    path('save/', views.proposal_save_view, name='proposal_save'),
]
