from django.urls import include, path

urlpatterns = [
    path("", include("modules.core.urls")),
    # Messaging platform webhook
    path("", include("modules.bot.urls")),
]
