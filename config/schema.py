import graphene
from habits.schema import Query as HabitsQuery, Mutation as HabitsMutation


class Query(HabitsQuery, graphene.ObjectType):
    storage_backend = graphene.String(required=True)

    def resolve_storage_backend(self, info):
        return info.context.habits.repository.backend.name


class Mutation(HabitsMutation, graphene.ObjectType):
    pass


schema = graphene.Schema(query=Query, mutation=Mutation)
