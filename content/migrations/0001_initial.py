from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='CourseVideo',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('course_id', models.CharField(db_index=True, max_length=64)),
                ('title', models.CharField(max_length=255)),
                ('status', models.CharField(choices=[('UPLOADING', 'Uploading'), ('READY', 'Ready'), ('FAILED', 'Failed')], default='UPLOADING', max_length=16)),
                ('video_url', models.CharField(blank=True, default='', max_length=1024)),
                ('s3_key', models.CharField(blank=True, default='', max_length=512)),
                ('duration', models.FloatField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='MediaRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(max_length=64)),
                ('url', models.CharField(max_length=1024)),
                ('public_id', models.CharField(max_length=512, unique=True)),
                ('resource_type', models.CharField(choices=[('image', 'Image'), ('video', 'Video')], max_length=8)),
                ('format', models.CharField(blank=True, default='', max_length=32)),
                ('file_size', models.BigIntegerField(blank=True, null=True)),
                ('original_filename', models.CharField(blank=True, default='', max_length=255)),
                ('is_transcoding', models.BooleanField(default=False)),
                ('transcoding_completed', models.BooleanField(default=False)),
                ('transcoding_job_id', models.UUIDField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
    ]
