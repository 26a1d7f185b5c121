from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='TranscodingJob',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('input_path', models.CharField(max_length=1024)),
                ('job_type', models.CharField(choices=[('post', 'Post'), ('reel', 'Reel'), ('story', 'Story'), ('media', 'Media'), ('course', 'Course')], max_length=16)),
                ('submitted_by', models.CharField(max_length=64)),
                ('original_filename', models.CharField(blank=True, default='', max_length=255)),
                ('linkage', models.JSONField(blank=True, null=True)),
                ('status', models.CharField(choices=[('QUEUED', 'Queued'), ('PROCESSING', 'Processing'), ('COMPLETED', 'Completed'), ('FAILED', 'Failed')], default='QUEUED', max_length=16)),
                ('progress', models.PositiveSmallIntegerField(default=0)),
                ('error', models.TextField(blank=True, default='')),
                ('output_url', models.CharField(blank=True, default='', max_length=1024)),
                ('output_key', models.CharField(blank=True, default='', max_length=512)),
                ('width', models.PositiveIntegerField(blank=True, null=True)),
                ('height', models.PositiveIntegerField(blank=True, null=True)),
                ('duration_seconds', models.FloatField(blank=True, null=True)),
                ('file_size_bytes', models.BigIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('failed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['submitted_by', '-created_at'], name='transcoding_owner_idx'),
                    models.Index(fields=['status'], name='transcoding_status_idx'),
                ],
            },
        ),
    ]
