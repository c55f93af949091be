"""Bot URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.bot.views import WebhookView

urlpatterns = [
    path("webhook", WebhookView.as_view(), name="webhook"),
]
