import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


PRIORITY_CHOICES = [
    ('critical', 'Critical'),
    ('urgent', 'Urgent'),
    ('high', 'High'),
    ('medium', 'Medium'),
    ('low', 'Low'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Team',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('goals_inherit', models.BooleanField(default=True, help_text='Tasks inherit priority from goals linked to this project')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('team', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='projects', to='priorities.team')),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Goal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=500)),
                ('description', models.TextField(blank=True)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='medium', max_length=20)),
                ('priority_score', models.FloatField(default=0.5)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('paused', 'Paused'), ('abandoned', 'Abandoned')], default='active', max_length=20)),
                ('target_date', models.DateField(blank=True, null=True)),
                ('progress', models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('team', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goals', to='priorities.team')),
            ],
            options={
                'ordering': ['-priority_score', 'title'],
            },
        ),
        migrations.CreateModel(
            name='GoalProject',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('goal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='project_links', to='priorities.goal')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goal_links', to='priorities.project')),
            ],
        ),
        migrations.AddConstraint(
            model_name='goalproject',
            constraint=models.UniqueConstraint(fields=('goal', 'project'), name='unique_goal_project'),
        ),
        migrations.AddField(
            model_name='goal',
            name='projects',
            field=models.ManyToManyField(blank=True, related_name='goals', through='priorities.GoalProject', to='priorities.project'),
        ),
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=500)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='medium', max_length=20)),
                ('priority_score', models.FloatField(default=0.5)),
                ('effective_priority_score', models.FloatField(blank=True, null=True)),
                ('effective_priority', models.CharField(blank=True, max_length=20)),
                ('has_priority_conflict', models.BooleanField(default=False)),
                ('priority_source', models.CharField(choices=[('manual', 'Manual'), ('goal', 'Goal'), ('project', 'Project')], default='manual', max_length=20)),
                ('status', models.CharField(choices=[('todo', 'To Do'), ('in_progress', 'In Progress'), ('done', 'Done'), ('archived', 'Archived')], default='todo', max_length=20)),
                ('is_blocked', models.BooleanField(default=False)),
                ('due_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_tasks', to=settings.AUTH_USER_MODEL)),
                ('project', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tasks', to='priorities.project')),
                ('team', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='priorities.team')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['team', 'status'], name='task_team_status_idx'),
                    models.Index(fields=['team', 'effective_priority_score'], name='task_team_effective_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GoalTask',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('goal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='task_links', to='priorities.goal')),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goal_links', to='priorities.task')),
            ],
        ),
        migrations.AddConstraint(
            model_name='goaltask',
            constraint=models.UniqueConstraint(fields=('goal', 'task'), name='unique_goal_task'),
        ),
        migrations.AddField(
            model_name='task',
            name='goals',
            field=models.ManyToManyField(blank=True, related_name='tasks', through='priorities.GoalTask', to='priorities.goal'),
        ),
    ]
