import graphene

from habits import dates


def _service(info):
    return info.context.habits


class HabitType(graphene.ObjectType):
    id = graphene.ID(required=True)
    name = graphene.String(required=True)
    created_at = graphene.DateTime(required=True)
    deleted_at = graphene.String()
    scheduled_time = graphene.String()
    is_critical = graphene.Boolean(required=True)


class HabitWithStatusType(graphene.ObjectType):
    id = graphene.ID(required=True)
    name = graphene.String(required=True)
    created_at = graphene.DateTime(required=True)
    deleted_at = graphene.String()
    scheduled_time = graphene.String()
    is_critical = graphene.Boolean(required=True)
    status = graphene.String(required=True)
    duration_minutes = graphene.Int()
    completion_time = graphene.String()

    def resolve_status(self, info):
        return str(self.status)


class Query(graphene.ObjectType):
    today = graphene.String(required=True)
    today_habits = graphene.List(graphene.NonNull(HabitWithStatusType), required=True)
    habits_for_date = graphene.List(
        graphene.NonNull(HabitWithStatusType),
        required=True,
        date=graphene.String(required=True),
        prioritized=graphene.Boolean(required=False),
    )
    active_habits = graphene.List(graphene.NonNull(HabitType), required=True)

    def resolve_today(self, info):
        return dates.today_string()

    def resolve_today_habits(self, info):
        return _service(info).get_today_habits()

    def resolve_habits_for_date(self, info, date, prioritized=False):
        return _service(info).get_habits_for_date(date, prioritized=bool(prioritized))

    def resolve_active_habits(self, info):
        return _service(info).get_active_habits()


class CreateHabit(graphene.Mutation):
    class Arguments:
        name = graphene.String(required=True)
        scheduled_time = graphene.String(required=False)
        is_critical = graphene.Boolean(required=False)

    habit_id = graphene.ID(required=True)

    def mutate(self, info, name, scheduled_time=None, is_critical=False):
        habit_id = _service(info).create_habit(name, scheduled_time, bool(is_critical))
        return CreateHabit(habit_id=habit_id)


class UpdateHabitScheduledTime(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)
        scheduled_time = graphene.String(required=False)

    ok = graphene.Boolean(required=True)

    def mutate(self, info, habit_id, scheduled_time=None):
        _service(info).update_habit_scheduled_time(int(habit_id), scheduled_time)
        return UpdateHabitScheduledTime(ok=True)


class MarkHabitDone(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)
        duration_minutes = graphene.Int(required=False)
        completion_time = graphene.String(required=False)

    ok = graphene.Boolean(required=True)

    def mutate(self, info, habit_id, duration_minutes=None, completion_time=None):
        _service(info).mark_habit_done(int(habit_id), duration_minutes, completion_time)
        return MarkHabitDone(ok=True)


class MarkHabitPending(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)

    ok = graphene.Boolean(required=True)

    def mutate(self, info, habit_id):
        _service(info).mark_habit_pending(int(habit_id))
        return MarkHabitPending(ok=True)


class DeleteHabit(graphene.Mutation):
    class Arguments:
        habit_id = graphene.ID(required=True)

    ok = graphene.Boolean(required=True)
    deleted_id = graphene.ID(required=True)

    def mutate(self, info, habit_id):
        _service(info).delete_habit(int(habit_id))
        return DeleteHabit(ok=True, deleted_id=habit_id)


class Mutation(graphene.ObjectType):
    create_habit = CreateHabit.Field()
    update_habit_scheduled_time = UpdateHabitScheduledTime.Field()
    mark_habit_done = MarkHabitDone.Field()
    mark_habit_pending = MarkHabitPending.Field()
    delete_habit = DeleteHabit.Field()
