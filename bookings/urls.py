from django.urls import path
from . import views

urlpatterns = [
    path('', views.submit_booking, name='submit_booking'),
    path('catalog/', views.get_catalog, name='booking_catalog'),
    path('counts/', views.booking_counts, name='booking_counts'),
    path('stats/', views.stats, name='booking_stats'),
    path('history/', views.history, name='booking_history'),
    path('history/<int:booking_id>/purge/', views.purge_booking, name='purge_booking'),
    path('timers/expire/', views.expire_timers, name='expire_timers'),
    path('<int:booking_id>/', views.get_booking, name='get_booking'),
    path('<int:booking_id>/approve/', views.approve_booking, name='approve_booking'),
    path('<int:booking_id>/reject/', views.reject_booking, name='reject_booking'),
    path('<int:booking_id>/cancel/', views.cancel_booking, name='cancel_booking'),
    path('<int:booking_id>/start/', views.start_order, name='start_order'),
    path('<int:booking_id>/advance/', views.advance_order, name='advance_order'),
    path('<int:booking_id>/complete/', views.complete_order, name='complete_order'),
    path('<int:booking_id>/pricing/', views.reprice_order, name='reprice_order'),
    path('<int:booking_id>/delete/', views.delete_booking, name='delete_booking'),
    path('<int:booking_id>/restore/', views.restore_booking, name='restore_booking'),
    path('<int:booking_id>/timer/', views.timer_status, name='timer_status'),
    path('<int:booking_id>/timer/auto-advance/', views.toggle_auto_advance, name='toggle_auto_advance'),
]
