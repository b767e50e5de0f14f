from django.urls import path
from . import views

urlpatterns = [
    path('', views.list_payments, name='list_payments'),
    path('<int:booking_id>/proof/', views.submit_proof, name='submit_proof'),
    path('<int:booking_id>/decide/', views.decide_payment, name='decide_payment'),
    path('<int:booking_id>/mark-paid/', views.mark_paid, name='mark_paid'),
    path('<int:booking_id>/mark-unpaid/', views.mark_unpaid, name='mark_unpaid'),
    path('<int:booking_id>/method/', views.change_method, name='change_payment_method'),
]
