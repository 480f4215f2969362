"""
URL configuration for the habit tracker.

The GraphQL endpoint is the only public surface; the view hands the
process's HabitDataService to resolvers through the request context.
"""
from django.apps import apps
from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from graphene_django.views import GraphQLView


class HabitGraphQLView(GraphQLView):
    def get_context(self, request):
        request.habits = apps.get_app_config("habits").get_service()
        return request


urlpatterns = [
    path("graphql/", csrf_exempt(HabitGraphQLView.as_view(graphiql=True))),
]
