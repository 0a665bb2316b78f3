import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='RegisteredApp',
            fields=[
                ('instance_url', models.CharField(help_text='Base URL of the Mastodon instance, like https://mastodon.social', max_length=255, primary_key=True, serialize=False, verbose_name='instance URL')),
                ('client_id', models.CharField(help_text='OAuth2 credential supplied by Mastodon instance when enrolling the app.', max_length=255, verbose_name='client ID')),
                ('client_secret', models.CharField(help_text='OAuth2 credential supplied by Mastodon instance when enrolling the app.', max_length=255, verbose_name='client secret')),
                ('created', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created')),
                ('modified', models.DateTimeField(auto_now=True, verbose_name='modified')),
            ],
            options={
                'verbose_name': 'registered app',
                'verbose_name_plural': 'registered apps',
            },
        ),
        migrations.CreateModel(
            name='Session',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False, verbose_name='ID')),
                ('instance_url', models.CharField(help_text='Base URL of the Mastodon instance the account is on.', max_length=255, verbose_name='instance URL')),
                ('access_token', models.TextField(blank=True, default='', help_text='Bearer token issued by the instance; blank until sign-in completes.', verbose_name='access token')),
                ('csrf_token', models.CharField(help_text='Included in every form and checked on every change.', max_length=64, verbose_name='CSRF token')),
                ('settings', models.JSONField(blank=True, default=dict, verbose_name='settings')),
                ('created', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created')),
                ('modified', models.DateTimeField(auto_now=True, verbose_name='modified')),
            ],
            options={
                'verbose_name': 'session',
                'verbose_name_plural': 'sessions',
            },
        ),
    ]
